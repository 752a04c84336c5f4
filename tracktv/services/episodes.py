"""Pure selectors over the cached episodes."""

from datetime import date, datetime, timezone
from typing import Iterable, List, NamedTuple, Optional

from tracktv.models.media import Episode, Show


class WatchProgress(NamedTuple):
    watched: int
    total: int


def parse_airdate(airdate: Optional[str]) -> Optional[datetime]:
    """Parse an air date as UTC midnight, or None when missing or malformed."""
    if not airdate:
        return None
    try:
        day = date.fromisoformat(airdate[:10])
    except ValueError:
        return None
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


def is_released(episode: Episode, now: Optional[datetime] = None) -> bool:
    """Return True if the episode aired strictly before ``now``.

    Episodes without an air date are never released.
    """
    aired = parse_airdate(episode.airdate)
    if aired is None:
        return False
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return aired < now


def filter_episodes(
    episodes: Iterable[Episode],
    shows: Iterable[Show] = (),
    unwatched_only: bool = False,
    released_only: bool = False,
    now: Optional[datetime] = None,
) -> List[Episode]:
    """Select the episodes to list, hiding those of ignored shows."""
    ignored = {show.id for show in shows if show.ignored}
    results = []
    for episode in episodes:
        if episode.show_id in ignored:
            continue
        if unwatched_only and episode.watched:
            continue
        if released_only and not is_released(episode, now):
            continue
        results.append(episode)
    return results


def watch_progress(episodes: Iterable[Episode], show_id: str) -> WatchProgress:
    """Count watched and total episodes of one show."""
    own = [ep for ep in episodes if ep.show_id == str(show_id)]
    return WatchProgress(watched=sum(1 for ep in own if ep.watched), total=len(own))
