"""
sections.py — Section table and lookup: forum section id → (type, category, weight).

A section id listed under a game category is "game", under a flood category
is "flood", anything else is "technical". The table is validated once when it
is loaded and is immutable afterwards.
"""

import json
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, NamedTuple

from pydantic import BaseModel, StrictInt, ValidationError, model_validator

from config import FORUM_SECTIONS, FORUM_SECTIONS_FILE, SECTION_WEIGHTS

logger = logging.getLogger(__name__)

GAME = "game"
FLOOD = "flood"
TECHNICAL = "technical"


class ConfigurationError(ValueError):
    """Raised when the section table is missing, malformed or lists an id more than once."""


class SectionInfo(NamedTuple):
    section_type: str
    category: str
    weight: float


# ─── Schema ──────────────────────────────────────────────────────────────────

class SectionTableSchema(BaseModel):
    """Raw {"game": {category: [ids]}, "flood": {...}} as read from config or JSON."""

    game: dict[str, list[StrictInt]] = {}
    flood: dict[str, list[StrictInt]] = {}

    @model_validator(mode="after")
    def check_ids(self) -> "SectionTableSchema":
        seen: dict[int, str] = {}
        for section_type, table in ((GAME, self.game), (FLOOD, self.flood)):
            for category, ids in table.items():
                owner = f"{section_type}.{category}"
                for section_id in ids:
                    if section_id in seen:
                        raise ValueError(
                            f"section id {section_id} is listed in both "
                            f"{seen[section_id]} and {owner}"
                        )
                    seen[section_id] = owner
        if not seen:
            raise ValueError("no game or flood sections listed")
        return self


def _freeze(table: dict) -> Mapping[str, tuple[int, ...]]:
    return MappingProxyType({category: tuple(ids) for category, ids in table.items()})


@dataclass(frozen=True)
class SectionConfig:
    """Immutable game/flood section table: {category: (ids...)} per type."""

    game: Mapping[str, tuple[int, ...]] = field(default_factory=lambda: MappingProxyType({}))
    flood: Mapping[str, tuple[int, ...]] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_dict(cls, raw) -> "SectionConfig":
        """
        Build and validate a config from {"game": {...}, "flood": {...}}.

        Raises ConfigurationError for an empty or non-object table, ids that
        are not integers, or an id listed under more than one category.
        """
        if not raw:
            raise ConfigurationError("Section config is empty.")
        try:
            schema = SectionTableSchema.model_validate(raw)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid section config: {exc}") from exc

        config = cls(game=_freeze(schema.game), flood=_freeze(schema.flood))
        logger.debug(f"Loaded section config: game={dict(config.game)}, flood={dict(config.flood)}")
        return config


def load_section_config(path: str | None = None) -> SectionConfig:
    """
    Load the section table from a JSON file, or from config.FORUM_SECTIONS
    when no file is given.
    """
    path = path if path is not None else FORUM_SECTIONS_FILE
    if not path:
        return SectionConfig.from_dict(FORUM_SECTIONS)
    logger.info(f"Loading section config from {path}")
    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Cannot read section config {path}: {exc}") from exc
    return SectionConfig.from_dict(raw)


class SectionClassifier:
    """
    Pure lookup over a SectionConfig.

    Usage:
        classifier = SectionClassifier(load_section_config())
        classifier.classify(7)   # SectionInfo("game", "roleplay", 2.0)
    """

    def __init__(self, config: SectionConfig, weights: dict | None = None):
        self.config = config
        self.weights = weights or SECTION_WEIGHTS
        self._index: dict[int, tuple[str, str]] = {}
        # game table first, then flood: first match wins
        for section_type, table in ((GAME, config.game), (FLOOD, config.flood)):
            for category, ids in table.items():
                for section_id in ids:
                    self._index.setdefault(section_id, (section_type, category))

    def classify(self, section_id) -> SectionInfo:
        try:
            key = int(section_id)
        except (TypeError, ValueError):
            key = None
        section_type, category = self._index.get(key, (TECHNICAL, TECHNICAL))
        return SectionInfo(section_type, category, self.weights[section_type])

    @property
    def game_section_ids(self) -> list[int]:
        return [sid for ids in self.config.game.values() for sid in ids]

    @property
    def flood_section_ids(self) -> list[int]:
        return [sid for ids in self.config.flood.values() for sid in ids]
