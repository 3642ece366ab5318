"""Shared dataclasses for service layer."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class MovieData:
    """Structured movie fields passed between the HTTP and storage layers."""

    imdb_id: str
    title: str
    year: int
    rating: float
    genres: list[str] = field(default_factory=list)
    is_super_hero: bool = False
    id: int | None = None
