"""API routes returning JSON for the browser client or external tools."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from tracktv.models.media import AddShowResult, Episode, RefreshResult, Show
from tracktv.services.episodes import filter_episodes, is_released, watch_progress
from tracktv.services.responses import TrackerAPIError
from tracktv.services.synchronizer import ShowSynchronizer

router = APIRouter()


def get_synchronizer(request: Request) -> ShowSynchronizer:
    """Dependency that provides the application's synchronizer."""
    return request.app.state.synchronizer


def _require_auth(sync: ShowSynchronizer) -> None:
    if not sync.auth.is_authenticated:
        raise HTTPException(status_code=401, detail="Not authenticated")


def _bad_gateway(message: str | None) -> HTTPException:
    return HTTPException(status_code=502, detail=message or "API request failed")


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "service": "tracktv"}


@router.get("/state")
async def get_state(sync: ShowSynchronizer = Depends(get_synchronizer)):
    """Loading flags and the last recorded errors."""
    return {
        "authenticated": sync.auth.is_authenticated,
        "loading": sync.loading,
        "error": sync.error,
        "is_refreshing": sync.is_refreshing,
        "refresh_error": sync.refresh_error,
        "shows": len(sync.shows),
        "episodes": len(sync.episodes),
    }


# --- Session ---


class LoginRequest(BaseModel):
    """Request body carrying an already issued bearer token."""

    token: str


@router.post("/login")
async def login(
    request: LoginRequest, sync: ShowSynchronizer = Depends(get_synchronizer)
):
    """Store the token and load the user's data."""
    if not request.token:
        raise HTTPException(status_code=400, detail="Token must not be empty")
    sync.auth.login(request.token)
    if not await sync.load_all():
        raise _bad_gateway(sync.error)
    return {"shows": len(sync.shows), "episodes": len(sync.episodes)}


@router.post("/logout")
async def logout(sync: ShowSynchronizer = Depends(get_synchronizer)):
    """Forget the token and clear the cache."""
    sync.auth.logout()
    await sync.load_all()
    return {"status": "logged_out"}


@router.post("/sync")
async def sync_all(sync: ShowSynchronizer = Depends(get_synchronizer)):
    """Reload shows and episodes from the backend."""
    _require_auth(sync)
    if not await sync.load_all():
        raise _bad_gateway(sync.error)
    return {"shows": len(sync.shows), "episodes": len(sync.episodes)}


# --- Shows ---


class ShowSummary(BaseModel):
    """A show with its watch progress."""

    show: Show
    watched: int
    total: int


@router.get("/shows", response_model=List[ShowSummary])
async def list_shows(sync: ShowSynchronizer = Depends(get_synchronizer)):
    """List tracked shows with watched/total counts."""
    _require_auth(sync)
    episodes = sync.episodes
    summaries = []
    for show in sync.shows:
        progress = watch_progress(episodes, show.id)
        summaries.append(
            ShowSummary(show=show, watched=progress.watched, total=progress.total)
        )
    return summaries


@router.post("/shows/{catalog_id}", response_model=AddShowResult)
async def add_show(catalog_id: str, sync: ShowSynchronizer = Depends(get_synchronizer)):
    """Add a show by catalog id."""
    _require_auth(sync)
    try:
        return await sync.add_show(catalog_id)
    except TrackerAPIError as e:
        raise _bad_gateway(str(e)) from e


@router.post("/shows/{catalog_id}/track", response_model=Show)
async def track_show(
    catalog_id: str, sync: ShowSynchronizer = Depends(get_synchronizer)
):
    """Track a show from its catalog metadata."""
    _require_auth(sync)
    show = await sync.track_show_from_catalog(catalog_id)
    if show is None:
        raise _bad_gateway(sync.error)
    return show


@router.delete("/shows/{show_id}")
async def delete_show(show_id: str, sync: ShowSynchronizer = Depends(get_synchronizer)):
    """Delete a show and its episodes."""
    _require_auth(sync)
    if sync.get_show(show_id) is None:
        raise HTTPException(status_code=404, detail="Show not found")
    try:
        await sync.delete_show(show_id)
    except TrackerAPIError as e:
        raise _bad_gateway(str(e)) from e
    return {"status": "deleted", "id": show_id}


@router.put("/shows/{show_id}/ignore", response_model=Show)
async def toggle_show_ignored(
    show_id: str, sync: ShowSynchronizer = Depends(get_synchronizer)
):
    """Toggle whether a show's episodes are hidden."""
    _require_auth(sync)
    if sync.get_show(show_id) is None:
        raise HTTPException(status_code=404, detail="Show not found")
    show = await sync.toggle_show_ignored(show_id)
    if show is None:
        raise _bad_gateway(sync.error)
    return show


# --- Episodes ---


class EpisodeView(Episode):
    """An episode with its release classification."""

    released: bool = False


@router.get("/episodes", response_model=List[EpisodeView])
async def list_episodes(
    unwatched_only: bool = Query(False, description="Hide watched episodes"),
    released_only: bool = Query(False, description="Hide unaired episodes"),
    sync: ShowSynchronizer = Depends(get_synchronizer),
):
    """List episodes of non-ignored shows."""
    _require_auth(sync)
    episodes = filter_episodes(
        sync.episodes,
        sync.shows,
        unwatched_only=unwatched_only,
        released_only=released_only,
    )
    return [
        EpisodeView(**episode.model_dump(), released=is_released(episode))
        for episode in episodes
    ]


@router.patch("/episodes/{episode_id}/watched", response_model=Episode)
async def toggle_episode_watched(
    episode_id: str, sync: ShowSynchronizer = Depends(get_synchronizer)
):
    """Toggle an episode's watched flag."""
    _require_auth(sync)
    if sync.get_episode(episode_id) is None:
        raise HTTPException(status_code=404, detail="Episode not found")
    episode = await sync.toggle_episode_watched(episode_id)
    if episode is None:
        raise _bad_gateway(sync.error)
    return episode


# --- Maintenance ---


@router.post("/refresh", response_model=RefreshResult)
async def refresh_shows(sync: ShowSynchronizer = Depends(get_synchronizer)):
    """Refresh catalog metadata for every tracked show."""
    _require_auth(sync)
    result = await sync.refresh_shows()
    if result is None:
        raise _bad_gateway(sync.refresh_error)
    return result


@router.delete("/data")
async def clear_all(sync: ShowSynchronizer = Depends(get_synchronizer)):
    """Remove all of the user's shows and episodes."""
    _require_auth(sync)
    if not await sync.clear_all():
        raise _bad_gateway(sync.error)
    return {"status": "cleared"}
