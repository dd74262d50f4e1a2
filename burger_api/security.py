"""Bearer token resolution shared by every endpoint."""
from __future__ import annotations

from typing import Optional

from fastapi import Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .accounts import AccountService
from .errors import Unauthorized
from .models import User


class BearerAuth:
    """Resolve the ``Authorization`` header to the calling user.

    ``required`` is the per-endpoint policy: when ``True`` a missing or
    unresolvable token raises :class:`Unauthorized`, otherwise the request
    continues anonymously and the dependency yields ``None``.
    """

    def __init__(self, accounts: AccountService, *, required: bool = True) -> None:
        self._accounts = accounts
        self._required = required
        self._bearer = HTTPBearer(auto_error=False)

    async def __call__(self, request: Request) -> Optional[User]:
        credentials: HTTPAuthorizationCredentials | None = await self._bearer(request)  # type: ignore[assignment]
        try:
            if credentials is None:
                raise Unauthorized()
            return self._accounts.authenticate(credentials.credentials)
        except Unauthorized:
            if self._required:
                raise
            return None


__all__ = ["BearerAuth"]
