"""Normalization of upstream payloads into catalog types."""

from urllib.parse import parse_qs, urlparse

from showsync.catalog.models import (
    Episode,
    EpisodePage,
    SearchPage,
    Show,
    UpstreamEpisode,
    UpstreamEpisodesPage,
    UpstreamImage,
    UpstreamShow,
    UpstreamShowsPage,
)


def _first_image(images: list[UpstreamImage]) -> str | None:
    return images[0].url if images else None


def extract_offset_cursor(next_url: str | None) -> str | None:
    """Extract the ``offset`` query parameter from a paging ``next`` URL.

    Args:
        next_url: Absolute URL of the following page, if any.

    Returns:
        The offset value, or None when there is no following page.

    Examples:
        >>> extract_offset_cursor("https://api.example.com/v1/episodes?offset=50")
        '50'
        >>> extract_offset_cursor(None) is None
        True
    """
    if not next_url:
        return None
    values = parse_qs(urlparse(next_url).query).get("offset")
    return values[0] if values else None


def normalize_show(show: UpstreamShow) -> Show:
    """Map an upstream show onto the normalized type."""
    return Show(
        id=show.id,
        title=show.name,
        publisher=show.publisher,
        description=show.description,
        html_description=show.html_description,
        image=_first_image(show.images),
        total_episodes=max(0, show.total_episodes or 0),
        external_url=show.external_urls.get("spotify"),
        categories=list(show.genres),
        explicit=show.explicit,
        languages=list(show.languages),
        available_markets=list(show.available_markets),
        media_type=show.media_type,
    )


def normalize_episode(episode: UpstreamEpisode, show_id: str | None = None) -> Episode:
    """Map an upstream episode onto the normalized type.

    The show id comes from the embedded show reference when present, else
    from ``show_id`` (the collection being listed), else from the episode id
    prefix.

    Args:
        episode: Raw upstream episode.
        show_id: Id of the collection the episode was listed under.

    Returns:
        Normalized episode.
    """
    if episode.show is not None:
        derived_show_id: str | None = episode.show.id
    elif show_id:
        derived_show_id = show_id
    else:
        derived_show_id = episode.id.split(":")[0]

    if episode.languages is not None:
        languages = list(episode.languages)
    else:
        languages = [episode.language] if episode.language else []

    link_url = episode.external_urls.get("spotify")
    return Episode(
        id=episode.id,
        show_id=derived_show_id,
        title=episode.name,
        description=episode.description,
        html_description=episode.html_description,
        audio_url=episode.audio_preview_url or link_url,
        image=_first_image(episode.images),
        link_url=link_url,
        published_at=episode.release_date,
        duration_sec=round(max(0, episode.duration_ms or 0) / 1000),
        explicit=episode.explicit,
        is_externally_hosted=episode.is_externally_hosted,
        is_playable=episode.is_playable,
        release_date_precision=episode.release_date_precision,
        languages=languages,
    )


def normalize_episodes_page(
    page: UpstreamEpisodesPage, show_id: str | None = None
) -> EpisodePage:
    """Map an upstream episode listing onto an ``EpisodePage``."""
    return EpisodePage(
        items=[normalize_episode(item, show_id) for item in page.items],
        next_cursor=extract_offset_cursor(page.next),
    )


def normalize_search_page(page: UpstreamShowsPage) -> SearchPage:
    """Map upstream search results onto a ``SearchPage``."""
    return SearchPage(
        items=[normalize_show(item) for item in page.items],
        next_cursor=extract_offset_cursor(page.next),
    )
