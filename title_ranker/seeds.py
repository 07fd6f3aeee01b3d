"""
Starter title lists for a fresh partition.
"""

import time
from collections.abc import Sequence

from .models import Category, Item

DEFAULT_FILMS: list[str] = [
    "Nosferatu", "Emilia Pérez", "Se7en", "Wolf Man", "Better Man",
    "Paddington in Peru", "Captain America: Brave New World", "Carry-On",
    "Self Reliance", "Patsers", "The Monkey", "The Gorge", "Juror #2",
    "Conclave", "Mickey 17", "Black Bag", "The Substance", "A Minecraft Movie",
    "Sinners", "Adolescence", "Thunderbolts*", "Death of a Unicorn",
    "Final Destination: Bloodlines", "Snow White", "Mission: Impossible - The Final Reckoning",
    "Ballerina", "How To Train Your Dragon", "Until Dawn", "28 Years Later",
    "F1", "Jurassic World Rebirth", "Materialists", "Superman",
    "Heads of State", "Fantastic Four: First Steps", "Weapons",
    "K-Pop: Demon Hunters", "Caught Stealing", "The Babysitter",
    "The Babysitter: Killer Queen", "Downton Abbey: The Grand Finale",
    "The Naked Gun", "One Battle After Another", "Tron: Ares",
    "Bodies Bodies Bodies", "Companion", "The Long Walk", "Predator: Badlands",
    "The Life of Chuck", "Frankenstein", "The Running Man", "The Black Phone 2",
]

DEFAULT_SERIES: list[str] = [
    "Creature Commandos", "Silo", "Shrinking", "Solo Leveling", "Skeleton Crew",
    "Severance", "Dune: Prophecy", "Doctor Who", "Ludwig", "Mythic Quest",
    "Beyond SNL", "Daredevil: Born Again", "A Thousand Blows", "De Mol",
    "The Studio", "The Real Housewives of Antwerp Reunie", "The Last of Us",
    "Pokerface", "Andor", "Ironheart", "Ginny & Georgia", "Hacks",
    "The Bear", "Alien: Earth", "Common Side Effects", "Star Trek: Strange New Worlds",
    "Peacemaker", "The Paper", "Dandadan", "Gen V", "De Verraders",
    "House of Guinness", "Welcome To Derry", "The Haunting of Hill House",
    "Pluribus", "Death by Lightning", "Stranger Things", "Chad Powers",
]


def default_titles(category: Category) -> list[str]:
    return list(DEFAULT_FILMS if category == Category.FILM else DEFAULT_SERIES)


def hydrate_titles(titles: Sequence[str], category: Category) -> list[Item]:
    """Turn titles into items with ids of the form <CATEGORY>-<index>-<millis>."""
    stamp = int(time.time() * 1000)
    return [
        Item(item_id=f"{category.value}-{index}-{stamp}", title=title.strip(), category=category)
        for index, title in enumerate(titles)
        if title.strip()
    ]
