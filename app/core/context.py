"""Explicit application context shared by request handlers."""
from __future__ import annotations

from dataclasses import dataclass

import httpx
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.core.config import Settings
from app.core.db import build_engine, build_session_factory


@dataclass(frozen=True)
class AppContext:
    """Objects built once at startup and passed to every handler.

    ``transport`` is forwarded to each outbound ``httpx.AsyncClient``; ``None``
    means the default network transport.
    """

    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    transport: httpx.AsyncBaseTransport | None = None

    def http_client(self, *, timeout: float | None = None, **kwargs) -> httpx.AsyncClient:
        """Return a new outbound HTTP client."""
        return httpx.AsyncClient(
            timeout=timeout if timeout is not None else self.settings.http_timeout_seconds,
            transport=self.transport,
            **kwargs,
        )


def build_context(
    settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None
) -> AppContext:
    engine = build_engine(settings)
    return AppContext(
        settings=settings,
        engine=engine,
        session_factory=build_session_factory(engine),
        transport=transport,
    )


def get_context(request: Request) -> AppContext:
    """FastAPI dependency returning the context attached to the application."""
    return request.app.state.context
