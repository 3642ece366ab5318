"""Database session management and repositories."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator

from fastapi import Request
from sqlalchemy import create_engine, select, update
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.models import Base, MovieRecord
from app.services.models import MovieData

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base exception for failures reported by the SQL store."""


class ConstraintViolation(StoreError):
    """Raised when a statement breaks a table constraint."""


class UniqueViolation(ConstraintViolation):
    """Raised when an insert collides with an existing imdbID."""


def _engine_options(url: str) -> dict[str, Any]:
    """SQLite needs cross-thread connections; in-memory databases need a single one."""

    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return {}
    options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if parsed.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    return options


class Database:
    """Owns the engine and session factory for one application instance."""

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self.url = url
        self.engine = create_engine(url, echo=echo, future=True, **_engine_options(url))
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, future=True)

    def init_models(self) -> None:
        """Create tables if they do not exist."""
        Base.metadata.create_all(bind=self.engine)

    def sessions(self) -> Iterator[Session]:
        """Yield one session, committing on success and rolling back on error."""

        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()


def get_session(request: Request) -> Iterator[Session]:
    """FastAPI-friendly dependency bound to the app's own Database."""

    database: Database = request.app.state.database
    yield from database.sessions()


@contextmanager
def _store_errors(session: Session, action: str) -> Iterator[None]:
    try:
        yield
    except IntegrityError as exc:
        session.rollback()
        raise ConstraintViolation(f"{action}: {exc.orig}") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        raise StoreError(f"{action}: {exc}") from exc


def _to_movie(record: MovieRecord) -> MovieData:
    return MovieData(
        id=record.id,
        imdb_id=record.imdb_id,
        title=record.title,
        year=record.year,
        rating=record.rating,
        genres=list(record.genres or []),
        is_super_hero=record.is_super_hero,
    )


class MovieRepository:
    """High level data access helpers for movie records."""

    def list_all(self, session: Session) -> list[MovieData]:
        query = select(MovieRecord).order_by(MovieRecord.id)
        with _store_errors(session, "list movies"):
            return [_to_movie(record) for record in session.execute(query).scalars()]

    def list_by_year(self, session: Session, year: int) -> list[MovieData]:
        query = select(MovieRecord).where(MovieRecord.year == year).order_by(MovieRecord.id)
        with _store_errors(session, "list movies by year"):
            return [_to_movie(record) for record in session.execute(query).scalars()]

    def get_by_imdb_id(self, session: Session, imdb_id: str) -> MovieData | None:
        query = select(MovieRecord).where(MovieRecord.imdb_id == imdb_id)
        with _store_errors(session, "get movie"):
            record = session.execute(query).scalar_one_or_none()
        return _to_movie(record) if record else None

    def create(self, session: Session, movie: MovieData) -> MovieData:
        """Insert and commit one row; a taken imdbID raises UniqueViolation."""

        record = MovieRecord(
            imdb_id=movie.imdb_id,
            title=movie.title,
            year=movie.year,
            rating=movie.rating,
            genres=list(movie.genres),
            is_super_hero=movie.is_super_hero,
        )
        try:
            with _store_errors(session, "create movie"):
                session.add(record)
                session.flush()  # assign the id and surface constraint errors now
                created = _to_movie(record)
                session.commit()
        except ConstraintViolation as exc:
            if self.get_by_imdb_id(session, movie.imdb_id) is not None:
                raise UniqueViolation(f"imdbID {movie.imdb_id} already exists") from exc
            raise
        return created

    def update(self, session: Session, imdb_id: str, movie: MovieData) -> MovieData | None:
        """Overwrite the mutable fields of `imdb_id`; None when no row matched."""

        statement = (
            update(MovieRecord)
            .where(MovieRecord.imdb_id == imdb_id)
            .values(
                title=movie.title,
                year=movie.year,
                rating=movie.rating,
                genres=list(movie.genres),
                is_super_hero=movie.is_super_hero,
            )
        )
        with _store_errors(session, "update movie"):
            result = session.execute(statement)
            if result.rowcount == 0:
                return None
            session.commit()
        return self.get_by_imdb_id(session, imdb_id)
