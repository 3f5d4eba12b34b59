"""Persistence for OAuth states and per-user Drive credentials."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.errors import CredentialNotFoundError, CredentialStoreError
from app.models import AuthorizationState, UserCredential
from app.schemas import TokenBundle

_UPSERT_INSERTS = {"sqlite": sqlite_insert, "postgresql": postgresql_insert}


@dataclass(frozen=True)
class ConsumedState:
    user_id: int
    created_at: datetime


def _as_utc(value: datetime) -> datetime:
    # SQLite returns naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CredentialStore:
    """Simple get/set/delete access to the two persisted collections."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def save_state(self, state_token: str, user_id: int) -> None:
        try:
            async with self._session_factory() as session:
                session.add(
                    AuthorizationState(
                        state_token=state_token,
                        user_id=user_id,
                        created_at=datetime.now(timezone.utc),
                    )
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise CredentialStoreError("Failed to save authorization state") from exc

    async def consume_state(self, state_token: str) -> ConsumedState | None:
        """Delete the state and return what it held, or ``None`` if unknown.

        Delete and read happen in one statement, so concurrent callbacks for
        the same token cannot both observe it.
        """

        statement = (
            delete(AuthorizationState)
            .where(AuthorizationState.state_token == state_token)
            .returning(AuthorizationState.user_id, AuthorizationState.created_at)
        )
        try:
            async with self._session_factory() as session:
                row = (await session.execute(statement)).first()
                await session.commit()
        except SQLAlchemyError as exc:
            raise CredentialStoreError("Failed to consume authorization state") from exc

        if row is None:
            return None
        return ConsumedState(user_id=row.user_id, created_at=_as_utc(row.created_at))

    async def purge_expired_states(self, ttl: timedelta) -> int:
        cutoff = datetime.now(timezone.utc) - ttl
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    delete(AuthorizationState).where(AuthorizationState.created_at < cutoff)
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise CredentialStoreError("Failed to purge expired authorization states") from exc
        return result.rowcount or 0

    async def get_credential(self, user_id: int) -> TokenBundle:
        try:
            async with self._session_factory() as session:
                credential = await session.get(UserCredential, user_id)
        except SQLAlchemyError as exc:
            raise CredentialStoreError(f"Failed to load credential for user {user_id}") from exc

        if credential is None:
            raise CredentialNotFoundError(user_id)
        bundle = TokenBundle.model_validate(credential)
        if bundle.expiry is not None:
            bundle.expiry = _as_utc(bundle.expiry)
        return bundle

    async def upsert_credential(self, user_id: int, token: TokenBundle) -> None:
        """Store ``token`` for ``user_id``, replacing any earlier record.

        A single ``INSERT ... ON CONFLICT DO UPDATE`` so overlapping callbacks
        for the same user both succeed and the later write wins.
        """

        values = {
            "access_token": token.access_token,
            "refresh_token": token.refresh_token,
            "token_type": token.token_type,
            "expiry": token.expiry,
            "created_at": datetime.now(timezone.utc),
        }
        try:
            async with self._session_factory() as session:
                dialect = session.get_bind().dialect.name
                insert = _UPSERT_INSERTS.get(dialect)
                if insert is None:
                    raise CredentialStoreError(f"Credential upsert is not supported on {dialect}")
                statement = (
                    insert(UserCredential)
                    .values(user_id=user_id, **values)
                    .on_conflict_do_update(index_elements=[UserCredential.user_id], set_=values)
                )
                await session.execute(statement)
                await session.commit()
        except SQLAlchemyError as exc:
            raise CredentialStoreError(f"Failed to save credential for user {user_id}") from exc
