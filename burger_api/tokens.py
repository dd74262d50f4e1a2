"""In-memory bearer and refresh token handling."""

from __future__ import annotations

import logging
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from .config import DEFAULT_ACCESS_TOKEN_TTL, DEFAULT_REFRESH_TOKEN_TTL
from .errors import InvalidToken, Unauthorized
from .models import TokenPair

logger = logging.getLogger("burgers.tokens")

BEARER_PREFIX = "Bearer "


@dataclass
class _TokenRecord:
    user_id: int
    issued_at: datetime
    expires_at: datetime
    partner: str


class TokenAuthority:
    """Issue, resolve, rotate, and revoke opaque access/refresh token pairs."""

    def __init__(
        self,
        *,
        access_ttl: timedelta = DEFAULT_ACCESS_TOKEN_TTL,
        refresh_ttl: timedelta = DEFAULT_REFRESH_TOKEN_TTL,
    ) -> None:
        self._access_ttl = access_ttl
        self._refresh_ttl = refresh_ttl
        self._access: Dict[str, _TokenRecord] = {}
        self._refresh: Dict[str, _TokenRecord] = {}
        self._lock = threading.Lock()

    def issue(self, user_id: int) -> TokenPair:
        with self._lock:
            return self._issue_locked(user_id)

    def resolve(self, header_value: Optional[str]) -> int:
        """Map an ``Authorization`` header value to the user it authenticates."""

        token = _strip_bearer(header_value)
        if not token:
            raise Unauthorized()

        now = self._now()
        with self._lock:
            record = self._access.get(token)
            if record is None:
                logger.debug("Rejected unknown access token")
                raise Unauthorized()
            if record.expires_at <= now:
                self._access.pop(token, None)
                logger.debug("Rejected expired access token for user %s", record.user_id)
                raise Unauthorized()
            return record.user_id

    def refresh(self, refresh_token: Optional[str]) -> TokenPair:
        """Exchange a refresh token for a new pair, revoking the old one."""

        token = (refresh_token or "").strip()
        now = self._now()
        with self._lock:
            record = self._refresh.pop(token, None) if token else None
            if record is None:
                raise InvalidToken()
            self._access.pop(record.partner, None)
            if record.expires_at <= now:
                raise InvalidToken()
            return self._issue_locked(record.user_id)

    def revoke(self, refresh_token: Optional[str]) -> int:
        """Revoke a refresh token and its paired access token; return the owner."""

        token = (refresh_token or "").strip()
        with self._lock:
            record = self._refresh.pop(token, None) if token else None
            if record is None:
                raise InvalidToken()
            self._access.pop(record.partner, None)
            return record.user_id

    def revoke_all(self, user_id: int) -> None:
        with self._lock:
            for table in (self._access, self._refresh):
                for token in [key for key, record in table.items() if record.user_id == user_id]:
                    del table[token]

    def _issue_locked(self, user_id: int) -> TokenPair:
        now = self._now()
        self._prune_locked(now)
        access = self._new_token(self._access)
        refresh = self._new_token(self._refresh)
        self._access[access] = _TokenRecord(
            user_id=user_id, issued_at=now, expires_at=now + self._access_ttl, partner=refresh
        )
        self._refresh[refresh] = _TokenRecord(
            user_id=user_id, issued_at=now, expires_at=now + self._refresh_ttl, partner=access
        )
        return TokenPair(access_token=BEARER_PREFIX + access, refresh_token=refresh)

    def _prune_locked(self, now: datetime) -> None:
        removed = 0
        for table in (self._access, self._refresh):
            expired = [key for key, record in table.items() if record.expires_at <= now]
            for token in expired:
                del table[token]
            removed += len(expired)
        if removed:
            logger.debug("Pruned %d expired tokens", removed)

    @staticmethod
    def _new_token(table: Dict[str, _TokenRecord]) -> str:
        while True:
            token = secrets.token_urlsafe(32)
            if token not in table:
                return token

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)


def _strip_bearer(header_value: Optional[str]) -> str:
    if not header_value:
        return ""
    value = header_value.strip()
    scheme, _, remainder = value.partition(" ")
    if remainder and scheme.lower() == "bearer":
        return remainder.strip()
    return value


__all__ = ["BEARER_PREFIX", "TokenAuthority"]
