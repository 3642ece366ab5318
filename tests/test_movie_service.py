from unittest import mock

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.db import ConstraintViolation, Database, MovieRepository, StoreError, UniqueViolation
from app.models import MovieRecord
from app.services import movies as movie_service
from app.services.models import MovieData
from app.services.movies import (
    ConflictError,
    MovieService,
    NotFoundError,
    StorageError,
    ValidationError,
)


@pytest.fixture
def sample_movie():
    return MovieData(
        imdb_id="tt001",
        title="Alpha",
        year=2000,
        rating=7.5,
        genres=["Action", "Drama"],
        is_super_hero=False,
    )


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.init_models()
    yield db
    db.dispose()


@pytest.fixture
def session(database):
    session = database.SessionLocal()
    yield session
    session.close()


def test_parse_year_variants():
    assert movie_service.parse_year(None) is None
    assert movie_service.parse_year("") is None
    assert movie_service.parse_year("2000") == 2000
    assert movie_service.parse_year("+1999") == 1999
    assert movie_service.parse_year("9999") == 9999
    for raw in ("abc", " 2000", "1_000", "20.0", "-12", "0", "10000", "9" * 30):
        with pytest.raises(ValidationError):
            movie_service.parse_year(raw)


def test_repository_create_assigns_id_and_reads_back(session, sample_movie):
    repo = MovieRepository()
    created = repo.create(session, sample_movie)

    assert created.id is not None and created.id > 0
    fetched = repo.get_by_imdb_id(session, "tt001")
    assert fetched == created
    assert repo.get_by_imdb_id(session, "tt999") is None


def test_repository_duplicate_raises_unique_violation(session, sample_movie):
    repo = MovieRepository()
    repo.create(session, sample_movie)

    with pytest.raises(UniqueViolation):
        repo.create(session, sample_movie)
    assert [m.title for m in repo.list_all(session)] == ["Alpha"]


def test_repository_not_null_failure_is_not_a_duplicate(session):
    repo = MovieRepository()
    broken = MovieData(imdb_id="tt010", title="Broken", year=2000, rating=None)

    with pytest.raises(ConstraintViolation) as excinfo:
        repo.create(session, broken)
    assert not isinstance(excinfo.value, UniqueViolation)
    assert repo.get_by_imdb_id(session, "tt010") is None


def _failing_commit(self):
    raise OperationalError("COMMIT", {}, Exception("disk I/O error"))


def test_repository_create_commit_failure_raises_store_error(session, sample_movie, monkeypatch):
    repo = MovieRepository()
    monkeypatch.setattr(Session, "commit", _failing_commit)
    with pytest.raises(StoreError):
        repo.create(session, sample_movie)
    monkeypatch.undo()

    assert repo.get_by_imdb_id(session, "tt001") is None


def test_repository_update_commit_failure_keeps_old_row(session, sample_movie, monkeypatch):
    repo = MovieRepository()
    repo.create(session, sample_movie)
    renamed = MovieData(imdb_id="tt001", title="Renamed", year=2001, rating=1.0)

    monkeypatch.setattr(Session, "commit", _failing_commit)
    with pytest.raises(StoreError):
        repo.update(session, "tt001", renamed)
    monkeypatch.undo()

    assert repo.get_by_imdb_id(session, "tt001").title == "Alpha"


def test_repository_update_returns_none_for_missing_row(session, sample_movie):
    assert MovieRepository().update(session, "tt404", sample_movie) is None


def test_repository_list_by_year_keeps_genres(session, sample_movie):
    repo = MovieRepository()
    repo.create(session, sample_movie)
    repo.create(session, MovieData(imdb_id="tt002", title="Bravo", year=2010, rating=5.0))

    movies = repo.list_by_year(session, 2000)
    assert [m.imdb_id for m in movies] == ["tt001"]
    assert movies[0].genres == ["Action", "Drama"]


def test_database_sessions_roll_back_on_error(database, sample_movie):
    sessions = database.sessions()
    session = next(sessions)
    session.add(MovieRecord(imdb_id="tt001", title="Alpha", year=2000, rating=7.5, is_super_hero=False))
    session.flush()
    with pytest.raises(RuntimeError):
        sessions.throw(RuntimeError("handler failed"))

    check = database.SessionLocal()
    try:
        assert MovieRepository().list_all(check) == []
    finally:
        check.close()


def test_service_maps_unique_violation_to_conflict(sample_movie):
    repo = mock.create_autospec(MovieRepository, instance=True)
    repo.create.side_effect = UniqueViolation("imdbID tt001 already exists")
    with pytest.raises(ConflictError, match="movie already exists"):
        MovieService(repo).create_movie(mock.sentinel.session, sample_movie)


def test_service_maps_other_constraint_violations_to_storage_error(sample_movie):
    repo = mock.create_autospec(MovieRepository, instance=True)
    repo.create.side_effect = ConstraintViolation("NOT NULL constraint failed: goimdb.rating")
    with pytest.raises(StorageError):
        MovieService(repo).create_movie(mock.sentinel.session, sample_movie)


def test_service_maps_store_errors_to_storage_error(sample_movie):
    repo = mock.create_autospec(MovieRepository, instance=True)
    repo.list_all.side_effect = StoreError("connection lost")
    repo.get_by_imdb_id.side_effect = StoreError("connection lost")
    repo.update.side_effect = StoreError("connection lost")
    service = MovieService(repo)

    with pytest.raises(StorageError):
        service.list_movies(mock.sentinel.session)
    with pytest.raises(StorageError):
        service.get_movie(mock.sentinel.session, "tt001")
    with pytest.raises(StorageError):
        service.update_movie(mock.sentinel.session, "tt001", sample_movie)


def test_service_not_found_paths(sample_movie):
    repo = mock.create_autospec(MovieRepository, instance=True)
    repo.get_by_imdb_id.return_value = None
    repo.update.return_value = None
    service = MovieService(repo)

    with pytest.raises(NotFoundError):
        service.get_movie(mock.sentinel.session, "tt999")
    with pytest.raises(NotFoundError):
        service.update_movie(mock.sentinel.session, "tt999", sample_movie)


def test_service_list_uses_year_filter(sample_movie):
    repo = mock.create_autospec(MovieRepository, instance=True)
    repo.list_by_year.return_value = [sample_movie]
    service = MovieService(repo)

    assert service.list_movies(mock.sentinel.session, "2000") == [sample_movie]
    repo.list_by_year.assert_called_once_with(mock.sentinel.session, 2000)
    repo.list_all.assert_not_called()
    with pytest.raises(ValidationError):
        service.list_movies(mock.sentinel.session, "twenty")
