"""SQLAlchemy-backed document store for canonical images."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from sqlalchemy import Engine, LargeBinary, String, create_engine, func, make_url
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from .errors import NotFoundError, StoreError

logger = logging.getLogger(__name__)

_UPSERT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class Base(DeclarativeBase):
    pass


class Document(Base):
    """Canonical upload keyed by lower-cased leaf name and comma-joined folders."""

    __tablename__ = "documents"

    name: Mapped[str] = mapped_column(String(512), primary_key=True)
    path: Mapped[str] = mapped_column(String(2048), primary_key=True, default="")
    binary: Mapped[bytes] = mapped_column(LargeBinary)
    content_type: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"Document(name={self.name!r}, path={self.path!r}, size={len(self.binary or b'')})"


def create_db_engine(database_url: str, *, pool_size: int = 5) -> Engine:
    """Create an engine with a connection pool suited to the backend."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        # Sessions are checked out by worker threads, not the creating thread.
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(database_url, pool_size=pool_size, pool_pre_ping=True)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_schema(engine: Engine) -> None:
    """Create the documents table if it does not exist yet."""
    Base.metadata.create_all(engine)


class DocumentStore:
    """Key-value access to documents within a caller-provided session."""

    def find(self, session: Session, name: str, path: str) -> Document:
        """Return the document stored under ``(name, path)`` or raise NotFoundError."""
        document = session.get(Document, (name, path))
        if document is None:
            raise NotFoundError(f"No image stored as {name!r} in {path!r}.")
        return document

    def find_or_new(self, session: Session, name: str, path: str) -> Document:
        """Return the stored document or a fresh unsaved one with the same key."""
        try:
            return self.find(session, name, path)
        except NotFoundError:
            return Document(name=name, path=path)

    def save(self, session: Session, document: Document) -> None:
        """
        Upsert ``document`` by its key and commit.

        SQLite and PostgreSQL get a native ``ON CONFLICT DO UPDATE`` so two first
        uploads of one key cannot collide; other backends fall back to merge.
        A missing content type keeps the one already stored.
        """
        values = {
            "name": document.name,
            "path": document.path,
            "binary": document.binary,
            "content_type": document.content_type,
        }
        try:
            dialect_insert = _UPSERT_INSERTS.get(session.get_bind().dialect.name)
            if dialect_insert is None:
                session.merge(document)
            else:
                statement = dialect_insert(Document).values(**values)
                statement = statement.on_conflict_do_update(
                    index_elements=["name", "path"],
                    set_={
                        "binary": statement.excluded["binary"],
                        "content_type": func.coalesce(
                            statement.excluded["content_type"], Document.content_type
                        ),
                    },
                )
                session.execute(statement)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception(
                "Failed to save document",
                extra={"image_name": document.name, "path": document.path},
            )
            raise StoreError(f"Unable to store image {document.name!r}: {exc}") from exc
