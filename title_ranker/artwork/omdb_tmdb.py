"""
OMDB + TMDB artwork lookup.

Flow:
  1. Search OMDB by title and take the first hit's IMDb id.
  2. Ask TMDB's /find endpoint for that IMDb id.
  3. Take the first movie result for FILM or tv result for SERIES and build
     the w500 poster URL from its poster_path.
"""

import httpx
from pydantic import TypeAdapter, ValidationError as PydanticValidationError
from typing_extensions import NotRequired, TypedDict, override

from ..exceptions import ArtworkLookupError
from ..interfaces import ArtworkLookup
from ..logging_config import get_logger
from ..models import Category

logger = get_logger("omdb_tmdb")

OMDB_BASE_URL = "https://www.omdbapi.com/"
TMDB_BASE_URL = "https://api.themoviedb.org/3"
TMDB_IMAGE_BASE = "https://image.tmdb.org/t/p/w500"
LOOKUP_TIMEOUT_SECONDS = 10.0


class OmdbSearchHit(TypedDict):
    imdbID: str
    Title: NotRequired[str]


class OmdbSearchResponse(TypedDict):
    Search: NotRequired[list[OmdbSearchHit]]


class TmdbResult(TypedDict):
    poster_path: NotRequired[str | None]


class TmdbFindResponse(TypedDict):
    movie_results: NotRequired[list[TmdbResult]]
    tv_results: NotRequired[list[TmdbResult]]


_omdb_adapter = TypeAdapter(OmdbSearchResponse)
_tmdb_adapter = TypeAdapter(TmdbFindResponse)


class OmdbTmdbArtworkLookup(ArtworkLookup):
    """
    Thin sync wrapper around the OMDB search and TMDB find APIs.

    Returns None when either service has no match. Transport, HTTP status and
    payload errors raise ArtworkLookupError.
    """

    def __init__(
        self,
        omdb_api_key: str,
        tmdb_api_token: str,
        client: httpx.Client | None = None,
        timeout: float = LOOKUP_TIMEOUT_SECONDS,
    ):
        """
        Initialize lookup.

        Args:
            omdb_api_key: OMDB API key
            tmdb_api_token: TMDB v4 read access token (sent as Bearer)
            client: HTTP client to reuse (one is created if omitted)
            timeout: Per-request timeout in seconds
        """
        self.omdb_api_key = omdb_api_key
        self.tmdb_api_token = tmdb_api_token
        self.client = client or httpx.Client(timeout=timeout)

    def _get_json(self, url: str, **kwargs: object) -> object:
        try:
            response = self.client.get(url, **kwargs)  # type: ignore[arg-type]
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            raise ArtworkLookupError(
                f"{url} failed with status {exc.response.status_code}"
            ) from exc
        except httpx.RequestError as exc:
            raise ArtworkLookupError(f"{url} request failed: {exc}") from exc
        except ValueError as exc:
            raise ArtworkLookupError(f"{url} returned invalid JSON") from exc

    def find_imdb_id(self, title: str) -> str | None:
        """First OMDB search hit for the title."""
        payload = self._get_json(OMDB_BASE_URL, params={"apikey": self.omdb_api_key, "s": title})
        try:
            search = _omdb_adapter.validate_python(payload)
        except PydanticValidationError as exc:
            raise ArtworkLookupError(f"Unexpected OMDB payload for '{title}'") from exc

        hits = search.get("Search") or []
        if not hits:
            return None
        return hits[0]["imdbID"]

    def find_poster_path(self, imdb_id: str, category: Category) -> str | None:
        """Poster path of the first TMDB result of the matching kind."""
        payload = self._get_json(
            f"{TMDB_BASE_URL}/find/{imdb_id}",
            params={"external_source": "imdb_id"},
            headers={
                "Authorization": f"Bearer {self.tmdb_api_token}",
                "accept": "application/json",
            },
        )
        try:
            found = _tmdb_adapter.validate_python(payload)
        except PydanticValidationError as exc:
            raise ArtworkLookupError(f"Unexpected TMDB payload for {imdb_id}") from exc

        if category == Category.FILM:
            results = found.get("movie_results") or []
        else:
            results = found.get("tv_results") or []
        if not results:
            return None
        return results[0].get("poster_path")

    @override
    def lookup(self, title: str, category: Category) -> str | None:
        if not self.omdb_api_key or not self.tmdb_api_token:
            logger.warning("Artwork API keys missing, skipping lookup")
            return None

        imdb_id = self.find_imdb_id(title)
        if imdb_id is None:
            logger.debug(f"No OMDB match for '{title}'")
            return None

        poster_path = self.find_poster_path(imdb_id, category)
        if not poster_path:
            logger.debug(f"No TMDB {category.value} poster for '{title}' ({imdb_id})")
            return None
        return f"{TMDB_IMAGE_BASE}{poster_path}"

    def close(self) -> None:
        self.client.close()
