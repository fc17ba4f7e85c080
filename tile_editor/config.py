"""
Configuration settings for the tile editor.
"""

import logging
import os
from typing import Tuple

import toml
from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger(__name__)


class EditorConfig(BaseModel):
    """Configuration settings for the editing engine."""

    # Tile geometry, shared by every tileset in a document
    tile_width: int = 8
    tile_height: int = 8
    tile_depth: int = 8  # Bits per pixel: 4 or 8

    # Defaults for newly added entities
    palette_size: int = 16
    tileset_tile_count: int = 64
    tileset_columns: int = 8
    map_width: int = 32
    map_height: int = 32

    # Editing
    max_undo_history: int = 100
    zoom_levels: Tuple[int, int] = (1, 16)  # Min, Max scale
    default_zoom: int = 4

    log_level: str = "WARNING"

    model_config = ConfigDict(extra="allow")

    @classmethod
    def load_from_toml(cls, path: str = "tile_editor.toml") -> "EditorConfig":
        """Load configuration from a TOML file."""
        if not os.path.exists(path):
            logger.warning("Config file %s not found. Using defaults.", path)
            return cls()

        try:
            with open(path, "r") as f:
                data = toml.load(f)
            return cls(**data.get("editor", {}))
        except (toml.TomlDecodeError, ValidationError) as e:
            logger.warning("Error loading config %s: %s. Using defaults.", path, e)
            return cls()


# Global config instance
CONFIG = EditorConfig()
