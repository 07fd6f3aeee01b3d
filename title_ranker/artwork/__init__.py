"""
Poster artwork lookup.
"""

from .cache import CachedArtworkLookup
from .omdb_tmdb import OmdbTmdbArtworkLookup

__all__ = ["CachedArtworkLookup", "OmdbTmdbArtworkLookup"]
