from datetime import timedelta

import pytest

from app.repositories.watch_history import get_watch_history_repository
from app.schemas.enums import MediaType
from app.services.resume_service import ResumePoint, compute_resume_episode, playback_path
from app.utils.timeutils import utcnow


async def _seed(db_session, user_id, tmdb_id, rows, media_type=MediaType.TV):
    repo = get_watch_history_repository(db_session)
    base = utcnow() - timedelta(hours=1)
    for i, (season, episode, progress) in enumerate(rows):
        await repo.upsert(
            user_id,
            tmdb_id=tmdb_id,
            media_type=media_type,
            season_number=season,
            episode_number=episode,
            progress=progress,
            watched_at=base + timedelta(minutes=i),
        )
    await db_session.commit()


@pytest.mark.anyio
async def test_no_history_is_series_start_without_metadata_call(db_session, create_test_user, tmdb_stub):
    user = await create_test_user()
    point = await compute_resume_episode(db_session, user.id, 1399, metadata=tmdb_stub)
    assert point == ResumePoint(1, 1, 0.0)
    assert tmdb_stub.season_calls == []


@pytest.mark.anyio
async def test_in_progress_short_circuits_metadata(db_session, create_test_user, tmdb_stub):
    user = await create_test_user()
    await _seed(db_session, user.id, 1399, [(1, 1, 100), (1, 2, 45)])
    point = await compute_resume_episode(db_session, user.id, 1399, metadata=tmdb_stub)
    assert point == ResumePoint(1, 2, 45)
    assert tmdb_stub.season_calls == []


@pytest.mark.anyio
async def test_completed_history_uses_season_layout(db_session, create_test_user, tmdb_stub):
    user = await create_test_user()
    tmdb_stub.add_series(1399, "Dragons", {1: 2, 2: 6})
    await _seed(db_session, user.id, 1399, [(1, 1, 100), (1, 2, 92)])
    point = await compute_resume_episode(db_session, user.id, 1399, metadata=tmdb_stub)
    assert point == ResumePoint(2, 1, 0.0)
    assert tmdb_stub.season_calls == [1399]


@pytest.mark.anyio
async def test_missing_metadata_resolves_without_layout(db_session, create_test_user, tmdb_stub):
    user = await create_test_user()
    await _seed(db_session, user.id, 1399, [(1, 8, 100)])
    point = await compute_resume_episode(db_session, user.id, 1399, metadata=tmdb_stub)
    assert point == ResumePoint(1, 9, 0.0)


@pytest.mark.anyio
async def test_other_users_and_movies_are_ignored(db_session, create_test_user, tmdb_stub):
    user = await create_test_user()
    other = await create_test_user()
    await _seed(db_session, other.id, 1399, [(3, 4, 50)])
    await _seed(db_session, user.id, 1399, [(0, 0, 50)], media_type=MediaType.MOVIE)
    point = await compute_resume_episode(db_session, user.id, 1399, metadata=tmdb_stub)
    assert point.is_series_start


def test_playback_paths():
    assert playback_path(MediaType.MOVIE, 550) == "/watch/movie/550"
    assert playback_path(MediaType.TV, 1399, ResumePoint(2, 3, 0)) == "/watch/tv/1399/2/3"
    assert playback_path(MediaType.TV, 1399) == "/watch/tv/1399"
