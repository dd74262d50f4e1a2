"""Read-only ingredient catalog lookups used to validate orders."""
from __future__ import annotations

import logging
import re
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

import httpx
import yaml

from .errors import CatalogUnavailable, MalformedIngredientId
from .models import Ingredient

logger = logging.getLogger("burgers.catalog")

_INGREDIENT_ID = re.compile(r"^[0-9a-fA-F]{24}$")
_INGREDIENT_TYPES = {"bun", "main", "sauce"}


def is_well_formed_id(ingredient_id: object) -> bool:
    return isinstance(ingredient_id, str) and bool(_INGREDIENT_ID.match(ingredient_id))


def _require_well_formed(ingredient_id: object) -> str:
    if not is_well_formed_id(ingredient_id):
        raise MalformedIngredientId(ingredient_id)
    return str(ingredient_id).lower()


def ingredient_from_dict(data: Mapping[str, object]) -> Ingredient:
    """Create an :class:`Ingredient` from catalog data.

    Accepts both ``id`` and the ``_id`` key used by the public ingredients API.
    """

    raw_id = data.get("id", data.get("_id"))
    if not is_well_formed_id(raw_id):
        raise ValueError(f"Ingredient id must be 24 hexadecimal characters: {raw_id!r}")
    name = str(data.get("name") or "").strip()
    if not name:
        raise ValueError(f"Ingredient {raw_id} must have a name")
    kind = str(data.get("type") or "main").strip().lower()
    if kind not in _INGREDIENT_TYPES:
        raise ValueError(f"Ingredient {raw_id} has unknown type '{kind}'")
    label = str(data.get("label") or name.split()[0]).strip()
    return Ingredient(id=str(raw_id).lower(), name=name, type=kind, label=label)


class IngredientCatalog:
    """Lookup interface consumed by the order service."""

    def get(self, ingredient_id: str) -> Optional[Ingredient]:
        raise NotImplementedError

    def exists(self, ingredient_id: str) -> bool:
        return self.get(ingredient_id) is not None

    def list(self) -> List[Ingredient]:
        raise NotImplementedError


class StaticIngredientCatalog(IngredientCatalog):
    """Catalog held entirely in memory."""

    def __init__(self, ingredients: Iterable[Ingredient]) -> None:
        self._ingredients: Dict[str, Ingredient] = {item.id: item for item in ingredients}
        if not self._ingredients:
            raise ValueError("Ingredient catalog must contain at least one ingredient")

    def get(self, ingredient_id: str) -> Optional[Ingredient]:
        return self._ingredients.get(_require_well_formed(ingredient_id))

    def list(self) -> List[Ingredient]:
        return list(self._ingredients.values())


class RemoteIngredientCatalog(IngredientCatalog):
    """Catalog fetched once from an HTTP ingredients endpoint and cached."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 5.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._client = client
        self._cache: Optional[StaticIngredientCatalog] = None
        self._lock = threading.Lock()

    def get(self, ingredient_id: str) -> Optional[Ingredient]:
        key = _require_well_formed(ingredient_id)
        return self._load().get(key)

    def list(self) -> List[Ingredient]:
        return self._load().list()

    def _load(self) -> StaticIngredientCatalog:
        with self._lock:
            if self._cache is None:
                self._cache = StaticIngredientCatalog(self._fetch())
                logger.info("Loaded %d ingredients from %s", len(self._cache.list()), self._url)
            return self._cache

    def _fetch(self) -> List[Ingredient]:
        try:
            if self._client is not None:
                response = self._client.get(self._url, timeout=self._timeout)
            else:
                response = httpx.get(self._url, timeout=self._timeout)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise CatalogUnavailable(f"Failed to fetch ingredients from {self._url}: {exc}") from exc
        except ValueError as exc:
            raise CatalogUnavailable(f"Ingredient service returned invalid JSON: {exc}") from exc

        items = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise CatalogUnavailable("Ingredient service response is missing the 'data' list")
        try:
            return [ingredient_from_dict(item) for item in items]
        except (ValueError, AttributeError) as exc:
            raise CatalogUnavailable(f"Ingredient service returned an invalid entry: {exc}") from exc


def load_ingredient_catalog(config_path: Path) -> StaticIngredientCatalog:
    """Load ingredients from a YAML file."""
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    items = raw.get("ingredients")
    if not items:
        raise ValueError("Catalog file must define at least one entry under the 'ingredients' key")
    return StaticIngredientCatalog(ingredient_from_dict(item) for item in items)


__all__ = [
    "IngredientCatalog",
    "RemoteIngredientCatalog",
    "StaticIngredientCatalog",
    "ingredient_from_dict",
    "is_well_formed_id",
    "load_ingredient_catalog",
]
