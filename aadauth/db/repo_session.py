"""Database-backed session store for the login flow."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from aadauth.core.settings import LOGIN_SESSION_TTL_DEFAULT
from aadauth.db.models_session import LoginSessionEntryEntity

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _utc_now() -> datetime:
    return datetime.now(UTC)


class SqlSessionStore:
    """Session entries for one session id, stored in ``login_session_entries``.

    ``delete`` is a single ``DELETE ... RETURNING`` statement, so two
    callbacks racing on the same session cannot both read the value.
    Entries live for ``ttl_seconds``; expired ones are invisible and are
    purged on the next write.
    """

    def __init__(
        self,
        db: AsyncSession,
        session_id: str,
        ttl_seconds: int = LOGIN_SESSION_TTL_DEFAULT,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._db = db
        self._session_id = session_id
        self._ttl = timedelta(seconds=ttl_seconds)
        self._now = now

    async def get(self, key: str) -> str | None:
        stmt = select(LoginSessionEntryEntity.value).where(
            LoginSessionEntryEntity.session_id == self._session_id,
            LoginSessionEntryEntity.key == key,
            LoginSessionEntryEntity.expires_at > self._now(),
        )
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def set(self, key: str, value: str) -> None:
        now = self._now()
        await self.purge_expired(now)
        insert = _UPSERT_DIALECTS[self._db.get_bind().dialect.name]
        stmt = insert(LoginSessionEntryEntity).values(
            session_id=self._session_id,
            key=key,
            value=value,
            expires_at=now + self._ttl,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[
                LoginSessionEntryEntity.session_id,
                LoginSessionEntryEntity.key,
            ],
            set_={
                "value": stmt.excluded.value,
                "expires_at": stmt.excluded.expires_at,
            },
        )
        await self._db.execute(stmt)

    async def delete(self, key: str) -> str | None:
        stmt = (
            delete(LoginSessionEntryEntity)
            .where(
                LoginSessionEntryEntity.session_id == self._session_id,
                LoginSessionEntryEntity.key == key,
            )
            .returning(
                LoginSessionEntryEntity.value, LoginSessionEntryEntity.expires_at
            )
        )
        row = (await self._db.execute(stmt)).one_or_none()
        if row is None or not self._is_live(row.expires_at):
            return None
        return row.value

    async def purge_expired(self, now: datetime | None = None) -> int:
        """Delete expired entries across all sessions; return how many."""
        cutoff = now or self._now()
        stmt = delete(LoginSessionEntryEntity).where(
            LoginSessionEntryEntity.expires_at <= cutoff
        )
        result = await self._db.execute(stmt)
        return result.rowcount

    def _is_live(self, expires_at: datetime) -> bool:
        now = self._now()
        # SQLite hands back naive datetimes.
        if expires_at.tzinfo is None:
            now = now.replace(tzinfo=None)
        return now < expires_at
