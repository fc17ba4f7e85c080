"""
Editing surfaces: the cell grids the tools paint on.

A tileset surface exposes the pixels of all tiles laid out by the tileset's
column count. A layer surface exposes the tile references of one map layer.
Both hand out addresses that stay valid when the tileset's column count
changes, so undo history survives a resize.
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from .document import EFFECT_LAYERS, MAPS, PALETTES, TILESETS, Document
from .errors import IndexOutOfRange
from .models import (
    EMPTY,
    UNSET,
    Button,
    CellChange,
    ChangeKind,
    MapLayer,
    Palette,
    Region,
    TileSet,
)

Address = Tuple[int, ...]


class Surface(ABC):
    """Rectangular grid of editable cells addressed by (x, y)."""

    clear_value = 0
    # Grid value marking cells that cannot hold data, None if every cell can
    blocked_value: Optional[int] = UNSET

    def __init__(self, document: Document):
        self.document = document

    @property
    @abstractmethod
    def width(self) -> int:
        ...

    @property
    @abstractmethod
    def height(self) -> int:
        ...

    @property
    def bounds(self) -> Region:
        return Region(0, 0, self.width, self.height)

    def clamp(self, x: int, y: int) -> Tuple[int, int]:
        return (
            min(max(x, 0), self.width - 1),
            min(max(y, 0), self.height - 1),
        )

    def contains(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    @abstractmethod
    def address(self, x: int, y: int) -> Optional[Address]:
        """Stable address of a cell, or None if the cell cannot hold data."""

    @abstractmethod
    def read_address(self, address: Address) -> int:
        ...

    @abstractmethod
    def write_address(self, address: Address, value: int):
        ...

    def get(self, x: int, y: int) -> int:
        address = self.address(x, y)
        return UNSET if address is None else self.read_address(address)

    @abstractmethod
    def grid(self) -> np.ndarray:
        """Copy of every cell value; UNSET where no data can be held."""

    def read_region(self, region: Region) -> np.ndarray:
        return self.grid()[region.y : region.bottom, region.x : region.right].copy()

    @abstractmethod
    def palette(self) -> Optional[Palette]:
        ...

    @abstractmethod
    def validate_value(self, value: int):
        ...

    def accepts(self, value: int) -> bool:
        try:
            self.validate_value(value)
        except IndexOutOfRange:
            return False
        return True

    @abstractmethod
    def depends_on(self, collection: str, eid: int) -> bool:
        """Whether changes to (collection, eid) can narrow the values this surface accepts."""

    @abstractmethod
    def notify_changed(self):
        ...

    @property
    @abstractmethod
    def target(self) -> Tuple[str, int]:
        """(collection, id) of the document entity this surface edits."""

    @abstractmethod
    def is_alive(self) -> bool:
        ...

    @abstractmethod
    def choose_value(self, selection, button: Button) -> int:
        """Value painted by a button, validated against the surface."""

    def geometry(self) -> Tuple[int, ...]:
        return (self.width, self.height)

    def keeps_addresses(self, old_geometry: Tuple[int, ...]) -> bool:
        """Whether addresses handed out under old_geometry still resolve."""
        return old_geometry == self.geometry()

    def apply(self, values: Dict[Tuple[int, int], int]) -> List[CellChange]:
        """
        Writes cell values and returns the changes actually made.
        Cells outside the surface or unable to hold data are skipped.
        """
        changes = []
        for (x, y), value in values.items():
            if not self.contains(x, y):
                continue
            address = self.address(x, y)
            if address is None:
                continue
            old = self.read_address(address)
            if old != value:
                self.write_address(address, value)
                changes.append(CellChange(address, old, value))
        return changes

    def apply_changes(self, changes: Iterable[CellChange], forward: bool = True):
        for change in changes:
            self.write_address(change.address, change.new if forward else change.old)


class TileSetSurface(Surface):
    """Pixel canvas of a tileset; cell values are palette entry indices."""

    clear_value = 0

    def __init__(self, document: Document, tileset_id: int):
        super().__init__(document)
        self.tileset_id = tileset_id

    @property
    def tileset(self) -> TileSet:
        return self.document.get(TILESETS, self.tileset_id)

    @property
    def target(self) -> Tuple[str, int]:
        return TILESETS, self.tileset_id

    def is_alive(self) -> bool:
        return self.tileset_id in self.document.tilesets

    def depends_on(self, collection: str, eid: int) -> bool:
        if collection == TILESETS:
            return eid == self.tileset_id
        return collection == PALETTES and eid == self.tileset.palette_id

    def geometry(self) -> Tuple[int, ...]:
        ts = self.tileset
        return (ts.columns, ts.tile_count)

    def keeps_addresses(self, old_geometry: Tuple[int, ...]) -> bool:
        return self.tileset.tile_count >= old_geometry[1]

    @property
    def width(self) -> int:
        ts = self.tileset
        return ts.columns * ts.tile_width

    @property
    def height(self) -> int:
        ts = self.tileset
        return ts.rows * ts.tile_height

    def address(self, x: int, y: int) -> Optional[Address]:
        ts = self.tileset
        if not self.contains(x, y):
            return None
        col, px = divmod(x, ts.tile_width)
        row, py = divmod(y, ts.tile_height)
        index = ts.tile_index_at(col, row)
        if index is None:
            return None
        return (index, px, py)

    def read_address(self, address: Address) -> int:
        index, px, py = address
        return int(self.tileset.tiles[index][py, px])

    def write_address(self, address: Address, value: int):
        index, px, py = address
        self.tileset.tiles[index][py, px] = value

    def grid(self) -> np.ndarray:
        ts = self.tileset
        canvas = np.full((self.height, self.width), UNSET, dtype=np.int32)
        for i, tile in enumerate(ts.tiles):
            col, row = i % ts.columns, i // ts.columns
            x, y = col * ts.tile_width, row * ts.tile_height
            canvas[y : y + ts.tile_height, x : x + ts.tile_width] = tile
        return canvas

    def palette(self) -> Optional[Palette]:
        return self.document.palettes.get(self.tileset.palette_id)

    def choose_value(self, selection, button: Button) -> int:
        value = selection.entry_for(self.tileset.palette_id, button)
        self.validate_value(value)
        return value

    def validate_value(self, value: int):
        palette = self.palette()
        limit = min(len(palette) if palette else 0, self.tileset.max_entries)
        if not 0 <= value < limit:
            raise IndexOutOfRange(f"Palette entry {value} not paintable (limit {limit})")

    def notify_changed(self):
        self.document.notify(ChangeKind.CONTENT, TILESETS, self.tileset_id)


class LayerSurface(Surface):
    """Cells of a map layer or effect layer; cell values are tile indices."""

    clear_value = EMPTY
    blocked_value = None

    def __init__(self, document: Document, collection: str, entity_id: int, layer: MapLayer):
        super().__init__(document)
        self.collection = collection
        self.entity_id = entity_id
        self.layer = layer

    @classmethod
    def for_map_layer(cls, document: Document, map_id: int, layer_index: int) -> "LayerSurface":
        owner = document.get(MAPS, map_id)
        if not 0 <= layer_index < len(owner.layers):
            raise IndexOutOfRange(f"Map '{owner.name}' has no layer {layer_index}")
        return cls(document, MAPS, map_id, owner.layers[layer_index])

    @classmethod
    def for_effect_layer(cls, document: Document, effect_id: int) -> "LayerSurface":
        return cls(document, EFFECT_LAYERS, effect_id, document.get(EFFECT_LAYERS, effect_id))

    @property
    def target(self) -> Tuple[str, int]:
        return self.collection, self.entity_id

    def is_alive(self) -> bool:
        owner = self.document.collection(self.collection).get(self.entity_id)
        if owner is None:
            return False
        if self.collection == EFFECT_LAYERS:
            return owner is self.layer
        return any(layer is self.layer for layer in owner.layers)

    def depends_on(self, collection: str, eid: int) -> bool:
        if collection == TILESETS:
            return eid == self.layer.tileset_id
        return (collection, eid) == self.target

    @property
    def tileset(self) -> Optional[TileSet]:
        tileset_id = self.layer.tileset_id
        return None if tileset_id is None else self.document.tilesets.get(tileset_id)

    @property
    def width(self) -> int:
        return self.layer.width

    @property
    def height(self) -> int:
        return self.layer.height

    def address(self, x: int, y: int) -> Optional[Address]:
        return (x, y) if self.contains(x, y) else None

    def read_address(self, address: Address) -> int:
        x, y = address
        return int(self.layer.cells[y, x])

    def write_address(self, address: Address, value: int):
        x, y = address
        self.layer.cells[y, x] = value

    def grid(self) -> np.ndarray:
        return self.layer.cells.astype(np.int32)

    def palette(self) -> Optional[Palette]:
        tileset = self.tileset
        return None if tileset is None else self.document.palettes.get(tileset.palette_id)

    def choose_value(self, selection, button: Button) -> int:
        tileset_id = self.layer.tileset_id
        if tileset_id is None:
            raise IndexOutOfRange(f"Layer '{self.layer.name}' has no tileset to paint from")
        value = selection.tile_for(tileset_id, button)
        self.validate_value(value)
        return value

    def validate_value(self, value: int):
        tileset = self.tileset
        count = tileset.tile_count if tileset else 0
        if value != EMPTY and not 0 <= value < count:
            raise IndexOutOfRange(f"Tile {value} not in tileset (count {count})")

    def notify_changed(self):
        self.document.notify(ChangeKind.CONTENT, self.collection, self.entity_id)
