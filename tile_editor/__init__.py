"""
Tile editing engine: palettes, tilesets, maps, and the tools that edit them.
"""

from .config import CONFIG, EditorConfig
from .document import EFFECT_LAYERS, MAPS, PALETTES, TILESETS, Document
from .editor import TileEditor
from .errors import (
    EditorError,
    GestureInProgress,
    IndexOutOfRange,
    InvalidDimension,
    InvalidName,
    NameConflict,
    OutOfBounds,
    ReferencedElsewhere,
)
from .log import setup_logging
from .models import (
    EMPTY,
    UNSET,
    BlendMode,
    Button,
    ChangeEvent,
    ChangeKind,
    EffectLayer,
    Map,
    MapLayer,
    Palette,
    Region,
    TileSet,
    ToolMode,
)
from .selection import SelectionModel
from .session import EditSession
from .surface import LayerSurface, TileSetSurface

__version__ = "0.1.0"
