# src/api/auth.py — v1
"""Session resolution: which user is calling.

Authentication itself lives outside this service; the resolver only
reads the identity an upstream gateway attached to the request.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from fastapi import Request

from actionextractor.core.errors import UnauthenticatedError


class BaseSessionResolver(ABC):
    """Maps an incoming request to a user id."""

    @abstractmethod
    async def resolve(self, request: Request) -> str | None:
        """Return the user id, or None when the request is anonymous."""

    async def require_user(self, request: Request) -> str:
        """Resolve or raise.

        Raises:
            UnauthenticatedError: When no user is attached.
        """
        user_id = await self.resolve(request)
        if not user_id:
            raise UnauthenticatedError()
        return user_id


class HeaderSessionResolver(BaseSessionResolver):
    """Reads the user id from a trusted request header."""

    def __init__(self, header_name: str = "X-User-Id") -> None:
        self._header_name = header_name

    async def resolve(self, request: Request) -> str | None:
        value = request.headers.get(self._header_name, "").strip()
        return value or None
