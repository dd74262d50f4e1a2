"""Registration, login and profile management."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .errors import Unauthorized
from .identity import IdentityStore
from .models import TokenPair, User
from .tokens import TokenAuthority

logger = logging.getLogger("burgers.accounts")


@dataclass(frozen=True)
class Session:
    """A user together with a freshly issued token pair."""

    user: User
    tokens: TokenPair


class AccountService:
    def __init__(self, identity: IdentityStore, tokens: TokenAuthority) -> None:
        self._identity = identity
        self._tokens = tokens

    def register(self, email: Optional[str], password: Optional[str], name: Optional[str]) -> Session:
        user = self._identity.create(email, password, name)
        return Session(user=user, tokens=self._tokens.issue(user.id))

    def login(self, email: Optional[str], password: Optional[str]) -> Session:
        user = self._identity.verify(email, password)
        logger.info("User %s logged in", user.id)
        return Session(user=user, tokens=self._tokens.issue(user.id))

    def authenticate(self, header_value: Optional[str]) -> User:
        """Resolve a bearer header to a live account or raise :class:`Unauthorized`."""

        user_id = self._tokens.resolve(header_value)
        user = self._identity.get(user_id)
        if user is None:
            self._tokens.revoke_all(user_id)
            raise Unauthorized()
        return user

    def update(
        self,
        user: User,
        *,
        email: Optional[str] = None,
        password: Optional[str] = None,
        name: Optional[str] = None,
    ) -> User:
        return self._identity.update(user.id, email=email, password=password, name=name)

    def delete(self, user: User) -> None:
        self._identity.delete(user.id)
        self._tokens.revoke_all(user.id)

    def refresh(self, refresh_token: Optional[str]) -> TokenPair:
        return self._tokens.refresh(refresh_token)

    def logout(self, refresh_token: Optional[str]) -> None:
        user_id = self._tokens.revoke(refresh_token)
        logger.info("User %s logged out", user_id)


__all__ = ["AccountService", "Session"]
