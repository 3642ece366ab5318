"""Service helpers translating movie requests into repository calls."""

from __future__ import annotations

import logging
import re

from sqlalchemy.orm import Session

from app.db import MovieRepository, StoreError, UniqueViolation
from app.services.models import MovieData

logger = logging.getLogger(__name__)

_YEAR_PATTERN = re.compile(r"[+-]?\d{1,6}")
MIN_YEAR = 1
MAX_YEAR = 9999


class MovieServiceError(Exception):
    """Base exception for movie operations."""


class ValidationError(MovieServiceError):
    """Raised when request input cannot be interpreted."""


class NotFoundError(MovieServiceError):
    """Raised when no movie exists for the given imdbID."""


class ConflictError(MovieServiceError):
    """Raised when a movie with the same imdbID already exists."""


class StorageError(MovieServiceError):
    """Raised for any other failure reported by the store."""


def parse_year(raw: str | None) -> int | None:
    """Return the year filter, None when absent or blank."""

    if raw is None or raw == "":
        return None
    if not _YEAR_PATTERN.fullmatch(raw):
        raise ValidationError(f"invalid year: {raw!r}")
    year = int(raw)
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise ValidationError(f"year out of range: {year}")
    return year


class MovieService:
    """List/get/create/update over movie records held by the repository."""

    def __init__(self, repository: MovieRepository | None = None) -> None:
        self.repository = repository or MovieRepository()

    def list_movies(self, session: Session, year: str | None = None) -> list[MovieData]:
        year_filter = parse_year(year)
        try:
            if year_filter is None:
                return self.repository.list_all(session)
            return self.repository.list_by_year(session, year_filter)
        except StoreError as exc:
            logger.exception("Listing movies failed (year=%s)", year_filter)
            raise StorageError(str(exc)) from exc

    def get_movie(self, session: Session, imdb_id: str) -> MovieData:
        try:
            movie = self.repository.get_by_imdb_id(session, imdb_id)
        except StoreError as exc:
            logger.exception("Fetching movie %s failed", imdb_id)
            raise StorageError(str(exc)) from exc
        if movie is None:
            raise NotFoundError(f"movie {imdb_id} not found")
        return movie

    def create_movie(self, session: Session, movie: MovieData) -> MovieData:
        try:
            created = self.repository.create(session, movie)
        except UniqueViolation as exc:
            logger.info("Rejected duplicate movie %s", movie.imdb_id)
            raise ConflictError("movie already exists") from exc
        except StoreError as exc:
            logger.exception("Creating movie %s failed", movie.imdb_id)
            raise StorageError(str(exc)) from exc
        logger.info("Created movie %s with id %s", created.imdb_id, created.id)
        return created

    def update_movie(self, session: Session, imdb_id: str, movie: MovieData) -> MovieData:
        """Update by imdbID; the stored imdbID and id never change."""

        try:
            updated = self.repository.update(session, imdb_id, movie)
        except StoreError as exc:
            logger.exception("Updating movie %s failed", imdb_id)
            raise StorageError(str(exc)) from exc
        if updated is None:
            raise NotFoundError(f"movie {imdb_id} not found")
        logger.info("Updated movie %s", imdb_id)
        return updated
