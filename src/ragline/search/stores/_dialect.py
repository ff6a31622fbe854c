"""Dialect-aware SQL helpers — keyed upsert for the embeddings table."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import and_, select, update

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession


def get_dialect(engine: Engine | AsyncEngine) -> str:
    """Return 'sqlite', 'postgresql', or the engine's raw dialect name."""
    # AsyncEngine wraps a sync engine
    sync_engine = getattr(engine, "sync_engine", engine)
    name = sync_engine.dialect.name
    if name in ("postgresql", "postgres"):
        return "postgresql"
    return name


async def upsert_row(
    session: AsyncSession,
    dialect: str,
    model: type,
    values: dict[str, Any],
    conflict_keys: list[str],
) -> None:
    """Insert *values* or update the row matching *conflict_keys*.

    - SQLite/PostgreSQL: INSERT ... ON CONFLICT DO UPDATE
    - Others: SELECT then UPDATE or INSERT inside the caller's transaction
    """
    if dialect in ("sqlite", "postgresql"):
        await _upsert_sqlite_pg(session, dialect, model, values, conflict_keys)
        return
    await _upsert_generic(session, model, values, conflict_keys)


async def _upsert_sqlite_pg(
    session: AsyncSession,
    dialect: str,
    model: type,
    values: dict[str, Any],
    conflict_keys: list[str],
) -> None:
    """SQLite / PostgreSQL upsert using INSERT ... ON CONFLICT DO UPDATE."""
    from sqlalchemy.dialects import sqlite as sqlite_dialect

    dialect_module = sqlite_dialect
    if dialect == "postgresql":
        from sqlalchemy.dialects import postgresql as pg_dialect

        dialect_module = pg_dialect

    stmt = dialect_module.insert(model).values(**values)
    update_cols = {k: v for k, v in values.items() if k not in conflict_keys}
    stmt = stmt.on_conflict_do_update(index_elements=conflict_keys, set_=update_cols)
    await session.execute(stmt)


async def _upsert_generic(
    session: AsyncSession,
    model: type,
    values: dict[str, Any],
    conflict_keys: list[str],
) -> None:
    match = and_(*(getattr(model, k) == values[k] for k in conflict_keys))
    existing = (await session.execute(select(model.id).where(match))).scalar_one_or_none()  # type: ignore[attr-defined]
    if existing is None:
        session.add(model(**values))
        await session.flush()
        return
    update_cols = {k: v for k, v in values.items() if k not in conflict_keys}
    await session.execute(update(model).where(match).values(**update_cols))
