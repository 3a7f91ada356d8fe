"""Upstream payload shapes and normalized catalog types."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ===== Raw upstream payloads =====


class UpstreamImage(BaseModel):
    """Image reference attached to shows and episodes."""

    model_config = ConfigDict(extra="ignore")

    url: str
    height: int | None = None
    width: int | None = None


class UpstreamShowRef(BaseModel):
    """Minimal show reference embedded in an episode payload."""

    model_config = ConfigDict(extra="ignore")

    id: str


class UpstreamShow(BaseModel):
    """Show object as returned by ``/shows/{id}`` and ``/search``."""

    model_config = ConfigDict(extra="ignore")

    id: Annotated[str, Field(min_length=1)]
    name: str = ""
    publisher: str = ""
    description: str = ""
    html_description: str | None = None
    images: list[UpstreamImage] = Field(default_factory=list)
    total_episodes: int | None = None
    external_urls: dict[str, str] = Field(default_factory=dict)
    genres: list[str] = Field(default_factory=list)
    explicit: bool | None = None
    languages: list[str] = Field(default_factory=list)
    available_markets: list[str] = Field(default_factory=list)
    media_type: str | None = None


class UpstreamEpisode(BaseModel):
    """Episode object as returned by ``/episodes/{id}`` and episode listings."""

    model_config = ConfigDict(extra="ignore")

    id: Annotated[str, Field(min_length=1)]
    name: str = ""
    description: str | None = None
    html_description: str | None = None
    audio_preview_url: str | None = None
    external_urls: dict[str, str] = Field(default_factory=dict)
    release_date: str | None = None
    release_date_precision: str | None = None
    duration_ms: int | None = None
    show: UpstreamShowRef | None = None
    images: list[UpstreamImage] = Field(default_factory=list)
    explicit: bool | None = None
    is_externally_hosted: bool | None = None
    is_playable: bool | None = None
    languages: list[str] | None = None
    language: str | None = None


def _drop_nulls(value: object) -> object:
    # Listings may contain null placeholders for unavailable entries
    if isinstance(value, list):
        return [entry for entry in value if entry is not None]
    return value


class UpstreamEpisodesPage(BaseModel):
    """Paging object returned by ``/shows/{id}/episodes``."""

    model_config = ConfigDict(extra="ignore")

    items: list[UpstreamEpisode] = Field(default_factory=list)
    next: str | None = None
    total: int | None = None

    @field_validator("items", mode="before")
    @classmethod
    def drop_null_items(cls, value: object) -> object:
        """Discard null entries in the listing."""
        return _drop_nulls(value) if value is not None else []


class UpstreamShowsPage(BaseModel):
    """Paging object holding search results."""

    model_config = ConfigDict(extra="ignore")

    items: list[UpstreamShow] = Field(default_factory=list)
    next: str | None = None
    total: int | None = None

    @field_validator("items", mode="before")
    @classmethod
    def drop_null_items(cls, value: object) -> object:
        """Discard null entries in the listing."""
        return _drop_nulls(value) if value is not None else []


class UpstreamSearchResponse(BaseModel):
    """Response of ``/search?type=show``; results are wrapped under ``shows``."""

    model_config = ConfigDict(extra="ignore")

    shows: UpstreamShowsPage = Field(default_factory=UpstreamShowsPage)


# ===== Normalized types =====


class Show(BaseModel):
    """Normalized show (a catalog collection)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: Annotated[str, Field(min_length=1)]
    title: str = ""
    publisher: str = ""
    description: str = ""
    html_description: str | None = None
    image: str | None = None
    total_episodes: Annotated[int, Field(ge=0)] = 0
    external_url: str | None = None
    categories: list[str] = Field(default_factory=list)
    explicit: bool | None = None
    languages: list[str] = Field(default_factory=list)
    available_markets: list[str] = Field(default_factory=list)
    media_type: str | None = None


class Episode(BaseModel):
    """Normalized episode (a catalog item)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: Annotated[str, Field(min_length=1)]
    show_id: str | None = None
    title: str = ""
    description: str | None = None
    html_description: str | None = None
    audio_url: str | None = None
    image: str | None = None
    link_url: str | None = None
    published_at: str | None = None
    duration_sec: Annotated[int, Field(ge=0)] = 0
    explicit: bool | None = None
    is_externally_hosted: bool | None = None
    is_playable: bool | None = None
    release_date_precision: str | None = None
    languages: list[str] = Field(default_factory=list)


class SearchPage(BaseModel):
    """One page of show search results."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    items: list[Show] = Field(default_factory=list)
    next_cursor: str | None = None


class EpisodePage(BaseModel):
    """One page of a show's episodes.

    ``next_cursor`` is the offset of the following page, or None on the last.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    items: list[Episode] = Field(default_factory=list)
    next_cursor: str | None = None
