"""SQLAlchemy ORM models.

This module defines the "goimdb" table which stores the movie records.
Column names keep the camelCase spelling used on the wire.
"""

from __future__ import annotations

from sqlalchemy import JSON, Boolean, Float, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class MovieRecord(Base):
    """One movie row; `imdb_id` is the external key, `id` the internal one."""

    __tablename__ = "goimdb"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    imdb_id: Mapped[str] = mapped_column("imdbID", String(64), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    rating: Mapped[float] = mapped_column(Float, nullable=False)
    # Native list column; a genre may contain commas.
    genres: Mapped[list[str] | None] = mapped_column("genresText", JSON, nullable=True)
    is_super_hero: Mapped[bool] = mapped_column("isSuperHero", Boolean, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"MovieRecord(id={self.id}, imdb_id={self.imdb_id}, title={self.title})"
