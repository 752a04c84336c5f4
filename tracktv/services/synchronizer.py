"""Client-side cache of tracked shows and episodes.

The synchronizer owns the only copy of the two collections and routes every
mutation through the backend. Deletion is optimistic (apply, then confirm,
roll back on failure); everything else waits for the backend before touching
the cache. Collections are replaced wholesale on every change so observers
can detect updates by identity.
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from tracktv.core.auth import AuthContext
from tracktv.models.media import (
    AddShowResult,
    Episode,
    ImportedEpisode,
    RefreshResult,
    Show,
)
from tracktv.services.api_client import TrackerClient
from tracktv.services.responses import InvalidResponseError, TrackerAPIError

logger = logging.getLogger(__name__)

Listener = Callable[[Tuple[Show, ...], Tuple[Episode, ...]], None]


class ShowSynchronizer:
    """Keeps the show and episode caches in step with the backend."""

    def __init__(self, client: TrackerClient, auth: AuthContext):
        self.client = client
        self.auth = auth
        self._shows: List[Show] = []
        self._episodes: List[Episode] = []
        self._listeners: List[Listener] = []
        self.loading = False
        self.error: Optional[str] = None
        self.is_refreshing = False
        self.refresh_error: Optional[str] = None

    # --- Read-only views ---

    @property
    def shows(self) -> Tuple[Show, ...]:
        return tuple(self._shows)

    @property
    def episodes(self) -> Tuple[Episode, ...]:
        return tuple(self._episodes)

    def get_show(self, show_id: str) -> Optional[Show]:
        return next((s for s in self._shows if s.id == str(show_id)), None)

    def get_episode(self, episode_id: str) -> Optional[Episode]:
        return next((e for e in self._episodes if e.id == str(episode_id)), None)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _replace(
        self,
        shows: Optional[List[Show]] = None,
        episodes: Optional[List[Episode]] = None,
    ) -> None:
        if shows is not None:
            self._shows = shows
        if episodes is not None:
            self._episodes = episodes
        snapshot = (self.shows, self.episodes)
        for listener in list(self._listeners):
            try:
                listener(*snapshot)
            except Exception as e:
                logger.error(f"State listener {listener!r} failed: {e}")

    def _requires_auth(self, operation: str) -> bool:
        if self.auth.is_authenticated:
            return True
        logger.debug("Skipping %s: not authenticated", operation)
        return False

    # --- Loading ---

    async def _fetch_episodes(
        self, show: Show, names: Optional[Dict[str, str]] = None
    ) -> List[Episode]:
        """Fetch and normalize one show's episodes.

        With ``names``, each record keeps its own ``showId`` (falling back to
        ``show.id``) and its show name is looked up there; otherwise every
        episode is attributed to ``show``.
        """
        data = await self.client.list_episodes(show.id)
        if not isinstance(data, list):
            raise InvalidResponseError(
                f"Invalid episode data format for show {show.name}"
            )
        if names is None:
            return [Episode.from_api(raw, show.name, show_id=show.id) for raw in data]

        episodes = []
        for raw in data:
            owner = str(raw.get("showId") or show.id)
            episodes.append(Episode.from_api(raw, names.get(owner), show_id=owner))
        return episodes

    async def load_all(self) -> bool:
        """Reload every show and its episodes from the backend.

        Episodes are fetched one show at a time, in show order. A show whose
        episodes cannot be fetched is logged and skipped; the load as a whole
        still succeeds. Returns False if the show list itself could not be
        loaded, in which case the cache is left as it was.
        """
        if not self.auth.is_authenticated:
            self._replace(shows=[], episodes=[])
            self.loading = False
            return True

        self.loading = True
        self.error = None
        try:
            shows_data = await self.client.list_shows()
            if not isinstance(shows_data, list):
                raise InvalidResponseError("Invalid show list format")
            shows = [Show.model_validate(item) for item in shows_data]
        except (TrackerAPIError, ValidationError) as e:
            logger.error("Error fetching shows: %s", e)
            self.error = str(e)
            self.loading = False
            return False

        names = {show.id: show.name for show in shows}
        episodes: List[Episode] = []
        for show in shows:
            try:
                episodes.extend(await self._fetch_episodes(show, names))
            except (
                TrackerAPIError,
                ValidationError,
                KeyError,
                AttributeError,
                TypeError,
            ) as e:
                logger.error("Error fetching episodes for show %s: %s", show.name, e)

        self._replace(shows=shows, episodes=episodes)
        self.loading = False
        return True

    # --- Shows ---

    async def add_show(self, catalog_id: str | int) -> Optional[AddShowResult]:
        """Add a show by catalog id and pull in its episodes.

        Returns a result with ``skipped=True`` when the show was already
        tracked; the cache is not touched in that case. If the episodes
        cannot be fetched the show stays cached without episodes until the
        next :meth:`load_all`. Errors from the add request propagate.
        """
        if not self._requires_auth("add_show"):
            return None

        catalog_id = str(catalog_id)
        try:
            result = await self.client.add_show(catalog_id)
        except TrackerAPIError as e:
            logger.error("Error adding show %s: %s", catalog_id, e)
            raise
        try:
            show = Show.model_validate(result["show"])
            skipped = bool(result.get("skipped"))
        except (ValidationError, KeyError, TypeError) as e:
            logger.error("Invalid add show response for %s: %r", catalog_id, result)
            raise InvalidResponseError("Invalid add show response from API", e) from e

        if skipped:
            logger.info("Show %s is already tracked", catalog_id)
            return AddShowResult(skipped=True, show=show)

        if self.get_show(show.id) is None:
            self._replace(shows=[*self._shows, show])

        try:
            new_episodes = await self._fetch_episodes(show)
        except (TrackerAPIError, ValidationError, KeyError, TypeError) as e:
            logger.error("Error fetching episodes for show %s: %s", show.name, e)
            return AddShowResult(skipped=False, show=show)

        kept = [ep for ep in self._episodes if ep.show_id != show.id]
        self._replace(episodes=[*kept, *new_episodes])
        return AddShowResult(skipped=False, show=show, episode_count=len(new_episodes))

    async def delete_show(self, show_id: str | int) -> None:
        """Remove a show and its episodes, optimistically.

        The cache is updated before the request is sent. If the backend
        rejects the deletion, both collections are restored to the snapshot
        taken before the removal and the error is re-raised. Changes made to
        the cache while the request was in flight are lost by that restore.
        """
        if not self._requires_auth("delete_show"):
            return

        show_id = str(show_id)
        snapshot_shows = list(self._shows)
        snapshot_episodes = list(self._episodes)

        self._replace(
            shows=[s for s in snapshot_shows if s.id != show_id],
            episodes=[e for e in snapshot_episodes if e.show_id != show_id],
        )

        try:
            await self.client.delete_show(show_id)
        except TrackerAPIError as e:
            logger.error("Error deleting show %s: %s", show_id, e)
            self._replace(shows=snapshot_shows, episodes=snapshot_episodes)
            self.error = f"Failed to delete show: {e}"
            raise

    async def toggle_show_ignored(self, show_id: str | int) -> Optional[Show]:
        """Flip the ignored flag on the backend, then mirror its answer."""
        if not self._requires_auth("toggle_show_ignored"):
            return None

        show_id = str(show_id)
        try:
            updated = await self.client.toggle_show_ignored(show_id)
            ignored = bool(updated["ignored"])
        except (TrackerAPIError, KeyError, TypeError) as e:
            logger.error("Error updating show status: %s", e)
            self.error = str(e)
            return None

        shows = [
            s.model_copy(update={"ignored": ignored}) if s.id == show_id else s
            for s in self._shows
        ]
        self._replace(shows=shows)
        return self.get_show(show_id)

    async def track_show_from_catalog(self, catalog_id: str | int) -> Optional[Show]:
        """Create a tracked show from catalog metadata and cache its episodes."""
        if not self._requires_auth("track_show_from_catalog"):
            return None

        catalog_id = str(catalog_id)
        self.loading = True
        self.error = None
        try:
            catalog = await self.client.get_catalog_show(catalog_id)
            image = (catalog.get("image") or {}).get("medium")
            await self.client.create_show(
                catalog_id, catalog["name"], image, catalog.get("status")
            )
            show = Show(
                id=catalog_id,
                name=catalog["name"],
                image=image,
                status=catalog.get("status") or "Unknown",
            )
            new_episodes = await self._fetch_episodes(show)
        except (
            TrackerAPIError,
            ValidationError,
            KeyError,
            AttributeError,
            TypeError,
        ) as e:
            logger.error("Error fetching show %s: %s", catalog_id, e)
            self.error = str(e)
            self.loading = False
            return None

        shows = self._shows if self.get_show(catalog_id) else [*self._shows, show]
        kept = [ep for ep in self._episodes if ep.show_id != catalog_id]
        self._replace(shows=shows, episodes=[*kept, *new_episodes])
        self.loading = False
        return show

    # --- Episodes ---

    async def toggle_episode_watched(
        self, episode_id: str | int
    ) -> Optional[Episode]:
        """Send the negation of the cached watched flag, then apply it."""
        if not self._requires_auth("toggle_episode_watched"):
            return None

        episode_id = str(episode_id)
        episode = self.get_episode(episode_id)
        if episode is None:
            logger.error("Error updating episode: unknown episode %s", episode_id)
            self.error = f"Episode {episode_id} not found"
            return None

        watched = not episode.watched
        try:
            await self.client.update_episode(episode_id, watched=watched)
        except TrackerAPIError as e:
            logger.error("Error updating episode: %s", e)
            self.error = str(e)
            return None

        self._replace(
            episodes=[
                ep.model_copy(update={"watched": watched}) if ep.id == episode_id else ep
                for ep in self._episodes
            ]
        )
        return self.get_episode(episode_id)

    # --- Bulk operations ---

    async def clear_all(self) -> bool:
        """Delete every show and episode of the current user."""
        if not self._requires_auth("clear_all"):
            return False
        try:
            result = await self.client.clear_all()
        except TrackerAPIError as e:
            logger.error("Error clearing data: %s", e)
            self.error = str(e)
            return False

        logger.info("Clear database result: %s", result)
        self._replace(shows=[], episodes=[])
        return True

    async def refresh_shows(self) -> Optional[RefreshResult]:
        """Refresh catalog metadata on the backend and reload the cache.

        Per-show refresh failures are summarized in ``refresh_error``; nothing
        is rolled back.
        """
        if not self._requires_auth("refresh_shows"):
            return None

        self.is_refreshing = True
        self.refresh_error = None
        try:
            try:
                raw = await self.client.refresh_shows()
            except TrackerAPIError as e:
                logger.error("Error refreshing shows: %s", e)
                self.refresh_error = str(e)
                return None
            logger.info("Refresh result: %s", raw)

            await self.load_all()

            try:
                result = RefreshResult.model_validate(raw)
            except ValidationError as e:
                logger.error("Invalid refresh response %r: %s", raw, e)
                self.refresh_error = "Invalid refresh response from API"
                return None

            if result.errors:
                failed = ", ".join(e.show_name for e in result.errors)
                self.refresh_error = f"Some shows failed to refresh: {failed}"
            return result
        finally:
            self.is_refreshing = False

    async def import_shows(
        self,
        shows: Sequence[Show],
        episodes: Iterable[ImportedEpisode] = (),
    ) -> int:
        """Attach imported episodes to already-imported shows.

        Episodes are matched to shows by name and posted one at a time; rows
        without a matching show, and rows the backend rejects, are skipped.
        Returns the number of episodes posted.
        """
        if not self._requires_auth("import_shows"):
            return 0

        await self.load_all()

        by_name = {show.name: show for show in shows}
        posted = 0
        for episode in episodes:
            show = by_name.get(episode.showname)
            if show is None:
                logger.warning("No imported show named %r", episode.showname)
                continue
            try:
                await self.client.add_episode(show.id, episode.to_payload())
                posted += 1
            except TrackerAPIError as e:
                logger.error(
                    "Error importing episode %s of %s: %s",
                    episode.name,
                    show.name,
                    e,
                )

        if posted:
            await self.load_all()
        return posted
