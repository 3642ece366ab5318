"""FastAPI entrypoint wiring the movie repository into HTTP routes."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.db import Database, get_session
from app.services.models import MovieData
from app.services.movies import (
    MAX_YEAR,
    MIN_YEAR,
    ConflictError,
    MovieService,
    NotFoundError,
    StorageError,
    ValidationError,
)

logger = logging.getLogger(__name__)
router = APIRouter()


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class MovieUpdateRequest(_CamelModel):
    title: str = Field(..., min_length=1)
    year: int = Field(..., ge=MIN_YEAR, le=MAX_YEAR)
    rating: float = Field(..., allow_inf_nan=False)
    genres: list[str] | None = None
    is_super_hero: bool = Field(default=False, alias="isSuperHero")


class MovieCreateRequest(MovieUpdateRequest):
    imdb_id: str = Field(..., min_length=1, alias="imdbID")


class MovieResponse(_CamelModel):
    id: int
    imdb_id: str = Field(alias="imdbID")
    title: str
    year: int
    rating: float
    genres: list[str]
    is_super_hero: bool = Field(alias="isSuperHero")


def get_movie_service(request: Request) -> MovieService:
    return request.app.state.movie_service


@router.get("/movies", response_model=list[MovieResponse])
def list_movies(
    year: str | None = None,
    session: Session = Depends(get_session),
    service: MovieService = Depends(get_movie_service),
) -> list[MovieResponse]:
    """List every movie, or only those released in `year`."""

    try:
        movies = service.list_movies(session, year)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"year must be an integer between {MIN_YEAR} and {MAX_YEAR}",
        ) from exc
    except StorageError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="failed to read movies",
        ) from exc
    return [_movie_to_response(movie) for movie in movies]


@router.get("/movies/{imdb_id}", response_model=MovieResponse)
def get_movie(
    imdb_id: str,
    session: Session = Depends(get_session),
    service: MovieService = Depends(get_movie_service),
) -> MovieResponse:
    try:
        movie = service.get_movie(session, imdb_id)
    except NotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="movie not found",
        ) from exc
    except StorageError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="failed to read movie",
        ) from exc
    return _movie_to_response(movie)


@router.post("/movies", response_model=MovieResponse, status_code=status.HTTP_201_CREATED)
def create_movie(
    payload: MovieCreateRequest,
    session: Session = Depends(get_session),
    service: MovieService = Depends(get_movie_service),
) -> MovieResponse:
    """Insert a new movie; the store assigns its id."""

    try:
        movie = service.create_movie(session, _payload_to_movie(payload, imdb_id=payload.imdb_id))
    except ConflictError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="movie already exists",
        ) from exc
    except StorageError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="failed to create movie",
        ) from exc
    return _movie_to_response(movie)


@router.put("/movies/{imdb_id}", response_model=MovieResponse)
def update_movie(
    imdb_id: str,
    payload: MovieUpdateRequest,
    session: Session = Depends(get_session),
    service: MovieService = Depends(get_movie_service),
) -> MovieResponse:
    """Overwrite a movie's fields; the path imdbID selects the row and never changes."""

    try:
        movie = service.update_movie(session, imdb_id, _payload_to_movie(payload, imdb_id=imdb_id))
    except NotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="movie not found",
        ) from exc
    except StorageError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="failed to update movie",
        ) from exc
    return _movie_to_response(movie)


async def _request_validation_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "invalid request", "errors": jsonable_encoder(exc.errors())},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build an app owning its own Database; tables are created on startup."""

    settings = settings or get_settings()
    database = Database(settings.database_url, echo=settings.sql_echo)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        logger.info("Ensuring movie table on %s", database.engine.url)
        database.init_models()
        yield
        database.dispose()

    app = FastAPI(title="Movie Repository Service", lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database
    app.state.movie_service = MovieService()
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.include_router(router)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s -> %s (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response

    return app


def _payload_to_movie(payload: MovieUpdateRequest, *, imdb_id: str) -> MovieData:
    return MovieData(
        imdb_id=imdb_id,
        title=payload.title,
        year=payload.year,
        rating=payload.rating,
        genres=list(payload.genres or []),
        is_super_hero=payload.is_super_hero,
    )


def _movie_to_response(movie: MovieData) -> MovieResponse:
    return MovieResponse(
        id=movie.id,
        imdb_id=movie.imdb_id,
        title=movie.title,
        year=movie.year,
        rating=movie.rating,
        genres=movie.genres,
        is_super_hero=movie.is_super_hero,
    )
