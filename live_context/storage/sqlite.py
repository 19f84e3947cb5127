from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, String, Text, create_engine, select
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from live_context.storage.base import StorageBackend


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    pass


class StoredDocument(Base):
    __tablename__ = "documents"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )


class SQLiteStorage(StorageBackend):
    """Documents kept in a single SQLite file (or in memory)."""

    def __init__(self, path: str = ":memory:") -> None:
        if path == ":memory:":
            url = "sqlite:///:memory:"
        else:
            url = f"sqlite:///{path}"
        self._engine = create_engine(url, echo=False)
        self._session_factory = sessionmaker(bind=self._engine)
        Base.metadata.create_all(self._engine)

    def _session(self) -> Session:
        return self._session_factory()

    def read(self, key: str) -> str | None:
        with self._session() as session:
            doc = session.get(StoredDocument, key)
            return doc.value if doc is not None else None

    def write(self, key: str, value: str) -> None:
        with self._session() as session, session.begin():
            doc = session.get(StoredDocument, key)
            if doc is None:
                session.add(StoredDocument(key=key, value=value))
            else:
                doc.value = value

    def delete(self, key: str) -> None:
        with self._session() as session, session.begin():
            doc = session.get(StoredDocument, key)
            if doc is not None:
                session.delete(doc)

    def list_keys(self) -> list[str]:
        with self._session() as session:
            return list(
                session.scalars(select(StoredDocument.key).order_by(StoredDocument.key))
            )

    def close(self) -> None:
        self._engine.dispose()
