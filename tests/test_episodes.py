from datetime import datetime, timezone

import pytest

from tracktv.models.media import Episode, Show
from tracktv.services.episodes import (
    filter_episodes,
    is_released,
    parse_airdate,
    watch_progress,
)

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


def ep(episode_id, show_id="1", airdate="2024-01-01", watched=False):
    return Episode(id=episode_id, show_id=show_id, airdate=airdate, watched=watched)


@pytest.mark.parametrize(
    "airdate, expected",
    [
        (None, False),
        ("", False),
        ("not-a-date", False),
        ("2024-03-09", True),
        ("2024-03-10", True),  # midnight of today is before noon
        ("2024-03-11", False),
        ("2030-01-01", False),
    ],
)
def test_is_released(airdate, expected):
    assert is_released(ep("1", airdate=airdate), now=NOW) is expected


def test_air_date_equal_to_now_is_not_released():
    midnight = datetime(2024, 3, 10, tzinfo=timezone.utc)
    assert is_released(ep("1", airdate="2024-03-10"), now=midnight) is False


def test_naive_now_is_treated_as_utc():
    assert is_released(ep("1", airdate="2024-03-09"), now=datetime(2024, 3, 10))


def test_is_released_defaults_to_current_time():
    assert is_released(ep("1", airdate="1999-12-31"))
    assert not is_released(ep("1", airdate="2999-01-01"))


def test_parse_airdate_accepts_timestamps():
    assert parse_airdate("2024-03-10T21:00:00Z") == datetime(
        2024, 3, 10, tzinfo=timezone.utc
    )


def test_filter_hides_ignored_shows():
    shows = [Show(id="1", name="Lost"), Show(id="2", name="Fargo", ignored=True)]
    episodes = [ep("a", "1"), ep("b", "2"), ep("c", "3")]

    assert [e.id for e in filter_episodes(episodes, shows)] == ["a", "c"]


def test_filter_unwatched_and_released():
    episodes = [
        ep("a", watched=True),
        ep("b"),
        ep("c", airdate="2030-01-01"),
        ep("d", airdate=None),
    ]

    unwatched = filter_episodes(episodes, unwatched_only=True)
    assert [e.id for e in unwatched] == ["b", "c", "d"]

    backlog = filter_episodes(episodes, unwatched_only=True, released_only=True, now=NOW)
    assert [e.id for e in backlog] == ["b"]


def test_watch_progress():
    episodes = [ep("a", watched=True), ep("b"), ep("c", show_id="2", watched=True)]

    assert watch_progress(episodes, "1") == (1, 2)
    assert watch_progress(episodes, 2) == (1, 1)
    assert watch_progress(episodes, "9") == (0, 0)
