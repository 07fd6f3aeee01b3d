"""
Title Ranker - Binary Insertion Ranking

Builds a best-first ranking of films or series from one "is A better than
B?" answer at a time, persisting every step so a ranking can be resumed.
"""

from .models import Category, ComparisonState, Item, PartitionKey, SearchWindow
from .interfaces import ArtworkLookup, Decider, PartitionStore
from .session import RankingSession, SessionConfig
from .orchestrator import Orchestrator, RunConfig

__version__ = "0.1.0"
__all__ = [
    "Category",
    "ComparisonState",
    "Item",
    "PartitionKey",
    "SearchWindow",
    "ArtworkLookup",
    "Decider",
    "PartitionStore",
    "RankingSession",
    "SessionConfig",
    "Orchestrator",
    "RunConfig",
]
