"""
CLI entry point for the title ranker.

Parses arguments, validates config, and wires components.
"""

import argparse
import os
import sys
from argparse import Namespace
from collections.abc import Sequence
from pathlib import Path
from typing import TypedDict

from prettytable import PrettyTable

from .artwork.cache import CachedArtworkLookup
from .artwork.omdb_tmdb import OmdbTmdbArtworkLookup
from .deciders.console_decider import ConsoleDecider
from .deciders.dummy_decider import DummyDecider
from .deciders.sim_decider import SimulatedDecider
from .exceptions import ConfigurationError, ValidationError
from .interfaces import Decider
from .logging_config import get_logger, setup_logging
from .models import Category, Item, PartitionKey
from .orchestrator import Orchestrator, RunConfig
from .seeds import default_titles, hydrate_titles
from .session import RankingSession, SessionConfig
from .stats import bottom_items, progress_percent, top_items
from .storage.json_store import JSONPartitionStore


class CLIArgs(TypedDict):
    """Typed representation of parsed CLI arguments."""
    data_dir: str
    owner: str
    epoch: int
    category: str
    add: list[str]
    seed_defaults: bool
    remove: list[str]
    reset: bool
    decider: str
    noise: float
    budget: int
    progress_every: int
    persist_workers: int
    no_history: bool
    fetch_posters: bool
    omdb_api_key: str
    tmdb_api_token: str
    show: str
    debug: bool
    log_level: str
    log_dir: str


def parse_args(argv: Sequence[str] | None = None) -> Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Title Ranker - rank films and series one comparison at a time"
    )

    # Partition
    _ = parser.add_argument(
        "--data-dir",
        required=True,
        help="Directory holding saved rankings"
    )
    _ = parser.add_argument(
        "--owner",
        required=True,
        help="Whose rankings these are (letters, numbers, underscores)"
    )
    _ = parser.add_argument(
        "--epoch",
        type=int,
        required=True,
        help="Grouping key for the ranking, usually a year"
    )
    _ = parser.add_argument(
        "--category",
        choices=[c.value for c in Category],
        default=Category.FILM.value,
        help="Which list to work on (default: FILM)"
    )

    # List edits
    _ = parser.add_argument(
        "--add",
        nargs="+",
        default=[],
        metavar="TITLE",
        help="Queue titles for ranking"
    )
    _ = parser.add_argument(
        "--seed-defaults",
        action="store_true",
        help="Queue the built-in title list if the partition is empty"
    )
    _ = parser.add_argument(
        "--remove",
        nargs="+",
        default=[],
        metavar="ITEM_ID",
        help="Delete items by id"
    )
    _ = parser.add_argument(
        "--reset",
        action="store_true",
        help="Clear the partition before doing anything else"
    )

    # Ranking
    _ = parser.add_argument(
        "--decider",
        choices=["console", "simulated", "dummy"],
        default="console",
        help="Who answers the comparisons (default: console)"
    )
    _ = parser.add_argument(
        "--noise",
        type=float,
        default=0.0,
        help="Noise level for the simulated decider (0-1, default: 0)"
    )
    _ = parser.add_argument(
        "--budget",
        type=int,
        default=500,
        help="Maximum decisions in this run (default: 500)"
    )
    _ = parser.add_argument(
        "--progress-every",
        type=int,
        default=5,
        help="Print progress every N placements (default: 5)"
    )
    _ = parser.add_argument(
        "--persist-workers",
        type=int,
        default=1,
        help="Background save threads, 0 saves inline (default: 1)"
    )
    _ = parser.add_argument(
        "--no-history",
        action="store_true",
        help="Do not append snapshots to the history file"
    )

    # Artwork
    _ = parser.add_argument(
        "--fetch-posters",
        action="store_true",
        help="Look up poster URLs for items without one"
    )
    _ = parser.add_argument(
        "--omdb-api-key",
        default=os.environ.get("OMDB_API_KEY", ""),
        help="OMDB API key (default: $OMDB_API_KEY)"
    )
    _ = parser.add_argument(
        "--tmdb-api-token",
        default=os.environ.get("TMDB_API_TOKEN", ""),
        help="TMDB read access token (default: $TMDB_API_TOKEN)"
    )

    # Output
    _ = parser.add_argument(
        "--show",
        choices=["list", "top", "bottom"],
        default="list",
        help="What to print at the end (default: list)"
    )
    _ = parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    _ = parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Set logging level (default: INFO)"
    )
    _ = parser.add_argument(
        "--log-dir",
        default=".",
        help="Directory for log files (default: current directory)"
    )

    return parser.parse_args(argv)


def args_to_typed(ns: Namespace) -> CLIArgs:
    """Convert argparse Namespace to typed CLIArgs."""
    return CLIArgs(
        data_dir=ns.data_dir,
        owner=ns.owner,
        epoch=ns.epoch,
        category=ns.category,
        add=ns.add,
        seed_defaults=ns.seed_defaults,
        remove=ns.remove,
        reset=ns.reset,
        decider=ns.decider,
        noise=ns.noise,
        budget=ns.budget,
        progress_every=ns.progress_every,
        persist_workers=ns.persist_workers,
        no_history=ns.no_history,
        fetch_posters=ns.fetch_posters,
        omdb_api_key=ns.omdb_api_key,
        tmdb_api_token=ns.tmdb_api_token,
        show=ns.show,
        debug=ns.debug,
        log_level=ns.log_level,
        log_dir=ns.log_dir,
    )


def validate_config(args: CLIArgs) -> None:
    """
    Validate configuration parameters.

    Raises:
        ConfigurationError: If any parameter is unusable
    """
    logger = get_logger("validate_config")

    if args["budget"] <= 0:
        raise ConfigurationError(f"budget must be positive, got {args['budget']}")
    if not (0.0 <= args["noise"] <= 1.0):
        raise ConfigurationError(f"noise must be between 0 and 1, got {args['noise']}")
    if args["persist_workers"] < 0:
        raise ConfigurationError(f"persist-workers must be non-negative, got {args['persist_workers']}")
    if args["progress_every"] <= 0:
        raise ConfigurationError(f"progress-every must be positive, got {args['progress_every']}")

    try:
        _ = PartitionKey(owner=args["owner"], epoch=args["epoch"], category=Category(args["category"]))
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e

    if args["fetch_posters"] and not (args["omdb_api_key"] and args["tmdb_api_token"]):
        raise ConfigurationError("--fetch-posters needs both an OMDB key and a TMDB token")

    data_dir = Path(args["data_dir"])
    data_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Data directory: {data_dir}")


def build_decider(args: CLIArgs, items: Sequence[Item]) -> Decider:
    """Create the decider selected on the command line."""
    logger = get_logger("build_decider")

    if args["decider"] == "console":
        return ConsoleDecider()
    if args["decider"] == "dummy":
        return DummyDecider(mode="alphabetical")
    if args["decider"] == "simulated":
        # Ground truth: earlier in the listing = better
        ground_truth = dict[str, float]()
        for i, item in enumerate(items):
            ground_truth[item.item_id] = float(len(items) - i) / len(items)
        logger.info(f"Simulated decider created with {len(ground_truth)} items, noise={args['noise']}")
        return SimulatedDecider(ground_truth, noise=args["noise"])

    raise ConfigurationError(f"Unknown decider: {args['decider']}")


def wire_components(args: CLIArgs) -> tuple[
    RankingSession,
    CachedArtworkLookup | None,
    RunConfig,
]:
    """Wire dependency injection components and activate the partition."""
    logger = get_logger("wire_components")

    logger.info("Creating store")
    store = JSONPartitionStore(Path(args["data_dir"]), keep_history=not args["no_history"])

    logger.info("Creating session")
    session = RankingSession(store, SessionConfig(persist_workers=args["persist_workers"]))
    key = PartitionKey(owner=args["owner"], epoch=args["epoch"], category=Category(args["category"]))
    _ = session.activate(key)

    artwork = None
    if args["fetch_posters"]:
        logger.info("Creating artwork lookup")
        artwork = CachedArtworkLookup(
            OmdbTmdbArtworkLookup(args["omdb_api_key"], args["tmdb_api_token"])
        )

    config = RunConfig(
        budget=args["budget"],
        progress_every=args["progress_every"],
        fetch_artwork=args["fetch_posters"],
    )
    logger.info(f"Configuration: {config}")

    return session, artwork, config


def apply_list_edits(session: RankingSession, args: CLIArgs) -> None:
    """Reset, seed, add and remove as requested, in that order."""
    logger = get_logger("apply_list_edits")
    key = session.active_key
    assert key is not None

    if args["reset"]:
        session.reset_partition()
        print(f"Reset {key}")

    if args["seed_defaults"]:
        if session.partition.total == 0:
            seeded = session.add_existing_items(hydrate_titles(default_titles(key.category), key.category))
            print(f"Seeded {len(seeded)} default titles")
        else:
            logger.info(f"{key} is not empty, not seeding defaults")

    if args["add"]:
        added = session.add_items(args["add"])
        print(f"Queued {len(added)} titles")

    for item_id in args["remove"]:
        item = session.partition.find(item_id)
        if item is None:
            print(f"No item with id {item_id}")
            continue
        _ = session.remove_item(item)
        print(f"Removed {item.title}")


def render_table(session: RankingSession, show: str) -> PrettyTable:
    """Build the final output table."""
    ranked = session.partition.ranked
    if show == "top":
        rows = top_items(ranked)
    elif show == "bottom":
        rows = bottom_items(ranked)
    else:
        rows = list(enumerate(ranked, 1))

    table = PrettyTable()
    table.field_names = ["Rank", "Title", "Item ID", "Poster"]
    table.align["Rank"] = "r"
    table.align["Title"] = "l"
    for rank, item in rows:
        table.add_row([rank, item.title, item.item_id, "yes" if item.poster_url else ""])
    return table


def main(argv: Sequence[str] | None = None) -> None:
    """Main CLI entry point."""
    raw_args = parse_args(argv)
    args = args_to_typed(raw_args)

    setup_logging(level=args["log_level"], debug=args["debug"], log_dir=args["log_dir"])
    logger = get_logger("main")

    try:
        validate_config(args)
    except ConfigurationError as e:
        logger.error(str(e))
        print(f"Error: {e}")
        sys.exit(1)

    logger.info("Starting Title Ranker")
    session, artwork, config = wire_components(args)

    try:
        apply_list_edits(session, args)

        partition = session.partition
        print("Title Ranker")
        print("=" * 60)
        print(f"Partition: {session.active_key}")
        print(f"Ranked: {len(partition.ranked)}  Queued: {len(partition.unranked)}")
        print(f"Decider: {args['decider']}")
        print("=" * 60)

        decider = build_decider(args, partition.ranked + partition.unranked)
        orchestrator = Orchestrator(session, decider, config, artwork=artwork)
        summary = orchestrator.run()

        partition = session.partition
        percent = progress_percent(len(partition.ranked), len(partition.unranked))
        print(f"\n{summary.decisions} decisions, {summary.placed} placed ({summary.stopped_reason})")
        print(f"Progress: {percent}% ranked, {len(partition.unranked)} remaining")
        print(render_table(session, args["show"]))

    except KeyboardInterrupt:
        logger.warning("Ranking interrupted by user")
        print("\nRanking interrupted; progress so far is saved")
        sys.exit(1)
    finally:
        if artwork is not None:
            artwork.close()
        session.close()


if __name__ == "__main__":
    main()
