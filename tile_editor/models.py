"""
Core models and data structures for the tile editor.
"""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple

import numpy as np

from .errors import IndexOutOfRange, InvalidDimension, OutOfBounds

# Pixel value reported for canvas cells past the last tile of a partial row
UNSET = -1
# Layer cell holding no tile reference
EMPTY = -1

MAX_PALETTE_ENTRIES = 256
VALID_DEPTHS = (4, 8)

Color = Tuple[int, int, int]


class Palette:
    """Ordered sequence of RGB color entries addressed by index."""

    def __init__(self, name: str, entries: Optional[List[Color]] = None):
        self.name = name
        self.entries: List[Color] = list(entries) if entries else [(0, 0, 0)]
        if len(self.entries) > MAX_PALETTE_ENTRIES:
            raise InvalidDimension(
                f"Palette holds at most {MAX_PALETTE_ENTRIES} entries"
            )

    @classmethod
    def grayscale(cls, name: str, size: int) -> "Palette":
        """Create a palette with an even black-to-white ramp."""
        if not 1 <= size <= MAX_PALETTE_ENTRIES:
            raise InvalidDimension(f"Invalid palette size {size}")
        if size == 1:
            return cls(name, [(0, 0, 0)])
        step = 255 / (size - 1)
        return cls(name, [(round(i * step),) * 3 for i in range(size)])

    def __len__(self) -> int:
        return len(self.entries)

    def get_entry(self, index: int) -> Color:
        if not 0 <= index < len(self.entries):
            raise IndexOutOfRange(
                f"Palette '{self.name}' has no entry {index} (size {len(self.entries)})"
            )
        return self.entries[index]

    def set_entry(self, index: int, color: Color):
        self.get_entry(index)
        self.entries[index] = tuple(int(c) for c in color)

    def add_entry(self, color: Color) -> int:
        if len(self.entries) >= MAX_PALETTE_ENTRIES:
            raise InvalidDimension(
                f"Palette holds at most {MAX_PALETTE_ENTRIES} entries"
            )
        self.entries.append(tuple(int(c) for c in color))
        return len(self.entries) - 1

    def copy(self, name: str) -> "Palette":
        return Palette(name, self.entries)


class TileSet:
    """
    Flat ordered sequence of tiles laid out in a grid of `columns` columns.
    Tile i sits at column i % columns, row i // columns.
    """

    def __init__(
        self,
        name: str,
        palette_id: int,
        tile_width: int = 8,
        tile_height: int = 8,
        tile_count: int = 1,
        columns: int = 1,
        depth: int = 8,
    ):
        if tile_width < 1 or tile_height < 1:
            raise InvalidDimension(f"Invalid tile size {tile_width}x{tile_height}")
        if columns < 1:
            raise InvalidDimension(f"Column count must be at least 1, got {columns}")
        if tile_count < 1:
            raise InvalidDimension(f"Tile count must be at least 1, got {tile_count}")
        if depth not in VALID_DEPTHS:
            raise InvalidDimension(f"Unsupported tile depth {depth}")

        self.name = name
        self.palette_id = palette_id
        self.tile_width = tile_width
        self.tile_height = tile_height
        self.depth = depth
        self.columns = columns
        self.tiles: List[np.ndarray] = [self.blank_tile() for _ in range(tile_count)]

    def blank_tile(self) -> np.ndarray:
        return np.zeros((self.tile_height, self.tile_width), dtype=np.int16)

    @property
    def tile_count(self) -> int:
        return len(self.tiles)

    @property
    def rows(self) -> int:
        return -(-len(self.tiles) // self.columns)

    @property
    def max_entries(self) -> int:
        return 1 << self.depth

    def tile_position(self, index: int) -> Tuple[int, int]:
        """Returns the (column, row) of a tile under the current column count."""
        self._check_index(index)
        return index % self.columns, index // self.columns

    def tile_index_at(self, col: int, row: int) -> Optional[int]:
        """Returns the tile index at a grid position, or None past the last tile."""
        if not (0 <= col < self.columns and 0 <= row):
            return None
        index = row * self.columns + col
        return index if index < len(self.tiles) else None

    def get_tile(self, index: int) -> np.ndarray:
        self._check_index(index)
        return self.tiles[index]

    def get_pixel(self, index: int, x: int, y: int) -> int:
        tile = self.get_tile(index)
        if not (0 <= x < self.tile_width and 0 <= y < self.tile_height):
            raise OutOfBounds(f"Pixel ({x}, {y}) outside {self.tile_width}x{self.tile_height} tile")
        return int(tile[y, x])

    def set_pixel(self, index: int, x: int, y: int, value: int):
        self.get_pixel(index, x, y)
        self.tiles[index][y, x] = value

    def _check_index(self, index: int):
        if not 0 <= index < len(self.tiles):
            raise OutOfBounds(
                f"Tileset '{self.name}' has no tile {index} (count {len(self.tiles)})"
            )

    def copy(self, name: str) -> "TileSet":
        dup = copy.copy(self)
        dup.name = name
        dup.tiles = [t.copy() for t in self.tiles]
        return dup


class BlendMode(Enum):
    NORMAL = "NORMAL"
    ADD = "ADD"
    SUBTRACT = "SUBTRACT"
    MULTIPLY = "MULTIPLY"
    ALPHA = "ALPHA"


class MapLayer:
    """Grid of tile indices into one tileset."""

    is_effect = False

    def __init__(self, name: str, tileset_id: Optional[int], width: int, height: int):
        if width < 1 or height < 1:
            raise InvalidDimension(f"Invalid layer size {width}x{height}")
        self.name = name
        self.tileset_id = tileset_id
        self.width = width
        self.height = height
        self.cells = np.full((height, width), EMPTY, dtype=np.int32)

    def get_cell(self, x: int, y: int) -> int:
        self._check(x, y)
        return int(self.cells[y, x])

    def set_cell(self, x: int, y: int, tile_index: int):
        self._check(x, y)
        self.cells[y, x] = tile_index

    def _check(self, x: int, y: int):
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise OutOfBounds(f"Cell ({x}, {y}) outside {self.width}x{self.height} layer")

    def references_beyond(self, tile_count: int) -> bool:
        return bool(np.any(self.cells >= tile_count))

    def detach(self):
        self.tileset_id = None
        self.cells.fill(EMPTY)

    def copy(self, name: str) -> "MapLayer":
        dup = copy.copy(self)
        dup.name = name
        dup.cells = self.cells.copy()
        return dup


class EffectLayer(MapLayer):
    """Map layer that post-processes what lies beneath it instead of drawing tiles directly."""

    is_effect = True

    def __init__(
        self,
        name: str,
        tileset_id: Optional[int],
        width: int,
        height: int,
        blend_mode: BlendMode = BlendMode.NORMAL,
        alpha: int = 255,
    ):
        super().__init__(name, tileset_id, width, height)
        self.blend_mode = blend_mode
        self.alpha = alpha


class Map:
    """Stack of layers sharing one grid size."""

    def __init__(self, name: str, width: int, height: int):
        if width < 1 or height < 1:
            raise InvalidDimension(f"Invalid map size {width}x{height}")
        self.name = name
        self.width = width
        self.height = height
        self.layers: List[MapLayer] = []
        self.effect_layer_ids: List[int] = []

    def copy(self, name: str) -> "Map":
        dup = Map(name, self.width, self.height)
        dup.layers = [layer.copy(layer.name) for layer in self.layers]
        dup.effect_layer_ids = list(self.effect_layer_ids)
        return dup


class ToolMode(Enum):
    SELECT = "SELECT"
    PEN = "PEN"
    RECTANGLE = "RECTANGLE"
    FILLED_RECTANGLE = "FILLED_RECTANGLE"
    LINE = "LINE"
    FILL = "FILL"
    FLIP_HORIZONTAL = "FLIP_HORIZONTAL"
    FLIP_VERTICAL = "FLIP_VERTICAL"
    ROTATE = "ROTATE"
    ZOOM_IN = "ZOOM_IN"
    ZOOM_OUT = "ZOOM_OUT"

    @property
    def is_zoom(self) -> bool:
        return self in (ToolMode.ZOOM_IN, ToolMode.ZOOM_OUT)


class Button(Enum):
    PRIMARY = "PRIMARY"
    SECONDARY = "SECONDARY"


@dataclass(frozen=True)
class Region:
    x: int
    y: int
    width: int
    height: int

    @classmethod
    def from_corners(cls, x0: int, y0: int, x1: int, y1: int) -> "Region":
        """Inclusive bounding box of two corners given in any order."""
        x, y = min(x0, x1), min(y0, y1)
        return cls(x, y, abs(x1 - x0) + 1, abs(y1 - y0) + 1)

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def contains(self, x: int, y: int) -> bool:
        return self.x <= x < self.right and self.y <= y < self.bottom

    def clip(self, width: int, height: int) -> Optional["Region"]:
        """Intersects with a width x height surface anchored at the origin."""
        x0, y0 = max(self.x, 0), max(self.y, 0)
        x1, y1 = min(self.right, width), min(self.bottom, height)
        if x1 <= x0 or y1 <= y0:
            return None
        return Region(x0, y0, x1 - x0, y1 - y0)


@dataclass
class ClipboardSnapshot:
    data: np.ndarray

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def height(self) -> int:
        return self.data.shape[0]


@dataclass
class CellChange:
    address: Tuple[int, ...]
    old: int
    new: int


@dataclass
class EditRecord:
    label: str
    surface: Any
    changes: List[CellChange] = field(default_factory=list)


class ChangeKind(Enum):
    ENTITY_LIST = "ENTITY_LIST"
    ENTITY = "ENTITY"
    CONTENT = "CONTENT"
    SELECTION = "SELECTION"


@dataclass(frozen=True)
class ChangeEvent:
    kind: ChangeKind
    collection: str
    entity_id: Optional[int] = None
