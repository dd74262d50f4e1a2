"""Domain records shared by the account and order services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple


@dataclass(frozen=True)
class User:
    """Represents a customer account stored in the service database."""

    id: int
    name: str
    email: str
    created_at: datetime


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class Ingredient:
    """A catalog entry that orders may reference by id."""

    id: str
    name: str
    type: str
    label: str


@dataclass(frozen=True)
class Order:
    """A persisted burger order. Orders never change after creation."""

    number: int
    ingredients: Tuple[str, ...]
    name: str
    owner_id: Optional[int]
    created_at: datetime


__all__ = ["Ingredient", "Order", "TokenPair", "User"]
