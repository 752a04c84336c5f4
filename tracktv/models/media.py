"""Media models for the tracked shows and episodes cache."""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Show(BaseModel):
    """A show on the user's list."""

    model_config = ConfigDict(
        frozen=True, populate_by_name=True, coerce_numbers_to_str=True
    )

    id: str = Field(alias="tvMazeId")
    name: str
    image: Optional[str] = None
    status: str = "Unknown"  # e.g., "Running", "Ended"
    ignored: bool = False


class Episode(BaseModel):
    """An episode in the normalized client shape."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        alias_generator=to_camel,
    )

    id: str
    show_id: str
    show_name: Optional[str] = None
    season: Optional[int] = None
    number: Optional[int] = None
    name: str = ""
    airdate: Optional[str] = None  # YYYY-MM-DD, empty when unannounced
    airtime: Optional[str] = None
    runtime: Optional[int] = None
    watched: bool = False

    @classmethod
    def from_api(
        cls, raw: dict, show_name: Optional[str], show_id: Optional[str] = None
    ) -> "Episode":
        """Normalize an episode record as stored by the backend.

        The backend keys episodes by ``tvMazeId``; ``show_id`` overrides the
        record's own ``showId`` when the caller already knows the owner.
        """
        return cls(
            id=raw["tvMazeId"],
            show_id=show_id if show_id is not None else raw["showId"],
            show_name=show_name,
            season=raw.get("season"),
            number=raw.get("number"),
            name=raw.get("name") or "",
            airdate=raw.get("airdate"),
            airtime=raw.get("airtime"),
            runtime=raw.get("runtime"),
            watched=bool(raw.get("watched", False)),
        )


class AddShowResult(BaseModel):
    """Outcome of adding a show by catalog id."""

    skipped: bool
    show: Show
    episode_count: int = 0


class RefreshFailure(BaseModel):
    """A show the backend could not refresh."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    show_name: str = Field(default="", alias="showName")
    error: Optional[str] = None


class RefreshResult(BaseModel):
    """Response of the catalog refresh endpoint."""

    model_config = ConfigDict(extra="allow")

    errors: List[RefreshFailure] = []


class ImportedEpisode(BaseModel):
    """An episode row coming from an import file."""

    model_config = ConfigDict(extra="ignore")

    showname: str
    season: Optional[int] = None
    episode: Optional[int] = None
    name: Optional[str] = None
    status: Optional[str] = None
    runtime: Optional[int] = None
    date: Optional[str] = None
    airtime: Optional[str] = None
    airdate: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude={"showname"})
