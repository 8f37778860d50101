"""SQLAlchemy storage backend for RewardShop."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator

from sqlalchemy import JSON, DateTime, Integer, String, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .base import AuditStore, DocumentStore


class Base(DeclarativeBase):
    pass


class DocumentTable(Base):
    __tablename__ = "rewardshop_documents"

    name: Mapped[str] = mapped_column(String(128), primary_key=True)
    data: Mapped[dict] = mapped_column(JSON, default=dict)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class AuditTable(Base):
    __tablename__ = "rewardshop_audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    action: Mapped[str] = mapped_column(String(128))
    payload: Mapped[dict] = mapped_column(JSON)


class AsyncSQLAlchemyStorage:
    """Bundle of async stores backed by SQLAlchemy."""

    def __init__(self, dsn: str, *, echo: bool = False) -> None:
        self._engine = create_async_engine(dsn, echo=echo, future=True)
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            yield session

    async def init_models(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self._engine.dispose()

    def document_store(self) -> "AsyncSQLAlchemyDocumentStore":
        return AsyncSQLAlchemyDocumentStore(self._session_factory)

    def audit_store(self) -> "AsyncSQLAlchemyAuditStore":
        return AsyncSQLAlchemyAuditStore(self._session_factory)


class AsyncSQLAlchemyDocumentStore(DocumentStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def exists(self, name: str) -> bool:
        async with self._session_factory() as session:
            stmt = select(DocumentTable.name).where(DocumentTable.name == name)
            return (await session.execute(stmt)).scalar_one_or_none() is not None

    async def read(self, name: str) -> dict[str, Any] | None:
        async with self._session_factory() as session:
            row = await session.get(DocumentTable, name)
            return dict(row.data) if row is not None else None

    async def write(self, name: str, data: dict[str, Any]) -> None:
        async with self._session_factory() as session:
            row = await session.get(DocumentTable, name)
            now = datetime.now(timezone.utc)
            if row is None:
                session.add(DocumentTable(name=name, data=dict(data), updated_at=now))
            else:
                row.data = dict(data)
                row.updated_at = now
            await session.commit()


class AsyncSQLAlchemyAuditStore(AuditStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add_entry(self, action: str, payload: dict) -> None:
        async with self._session_factory() as session:
            session.add(
                AuditTable(
                    created_at=datetime.now(timezone.utc),
                    action=action,
                    payload=dict(payload),
                )
            )
            await session.commit()

    async def recent(self, limit: int = 50) -> list[tuple[datetime, str, dict]]:
        async with self._session_factory() as session:
            stmt = select(AuditTable).order_by(AuditTable.id.desc()).limit(limit)
            rows = (await session.execute(stmt)).scalars().all()
            return [(row.created_at, row.action, dict(row.payload)) for row in rows]
