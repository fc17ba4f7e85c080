"""
Active palette entry and tile selection, remembered per palette and per tileset.
"""

from typing import Dict, Tuple

from .document import PALETTES, TILESETS, Document
from .errors import IndexOutOfRange
from .models import Button, ChangeKind

LEFT = 0
RIGHT = 1


class SelectionModel:
    """
    Left (primary button) and right (secondary button) choices.
    Palette entries are keyed by palette id, tiles by tileset id, so
    switching between palettes recalls each one's own selection.
    """

    def __init__(self, document: Document):
        self.document = document
        self.entries: Dict[int, Tuple[int, int]] = {}
        self.tiles: Dict[int, Tuple[int, int]] = {}

    def _set(self, store: Dict[int, Tuple[int, int]], key: int, side: int, index: int):
        pair = list(store.get(key, (0, 0)))
        pair[side] = index
        store[key] = (pair[0], pair[1])

    # --- Palette entries ---

    def get_left_entry(self, palette_id: int) -> int:
        return self.entries.get(palette_id, (0, 0))[LEFT]

    def get_right_entry(self, palette_id: int) -> int:
        return self.entries.get(palette_id, (0, 0))[RIGHT]

    def set_left_entry(self, palette_id: int, index: int):
        self._set_entry(palette_id, LEFT, index)

    def set_right_entry(self, palette_id: int, index: int):
        self._set_entry(palette_id, RIGHT, index)

    def _set_entry(self, palette_id: int, side: int, index: int):
        palette = self.document.get(PALETTES, palette_id)
        if not 0 <= index < len(palette):
            raise IndexOutOfRange(
                f"Palette '{palette.name}' has {len(palette)} entries, got {index}"
            )
        self._set(self.entries, palette_id, side, index)
        self.document.notify(ChangeKind.SELECTION, PALETTES, palette_id)

    def entry_for(self, palette_id: int, button: Button) -> int:
        if button == Button.PRIMARY:
            return self.get_left_entry(palette_id)
        return self.get_right_entry(palette_id)

    # --- Tiles, used when painting map layers ---

    def get_left_tile(self, tileset_id: int) -> int:
        return self.tiles.get(tileset_id, (0, 0))[LEFT]

    def get_right_tile(self, tileset_id: int) -> int:
        return self.tiles.get(tileset_id, (0, 0))[RIGHT]

    def set_left_tile(self, tileset_id: int, index: int):
        self._set_tile(tileset_id, LEFT, index)

    def set_right_tile(self, tileset_id: int, index: int):
        self._set_tile(tileset_id, RIGHT, index)

    def _set_tile(self, tileset_id: int, side: int, index: int):
        tileset = self.document.get(TILESETS, tileset_id)
        if not 0 <= index < tileset.tile_count:
            raise IndexOutOfRange(
                f"Tileset '{tileset.name}' has {tileset.tile_count} tiles, got {index}"
            )
        self._set(self.tiles, tileset_id, side, index)
        self.document.notify(ChangeKind.SELECTION, TILESETS, tileset_id)

    def tile_for(self, tileset_id: int, button: Button) -> int:
        if button == Button.PRIMARY:
            return self.get_left_tile(tileset_id)
        return self.get_right_tile(tileset_id)

    def forget(self, collection: str, eid: int):
        """Drops remembered choices for a removed palette or tileset."""
        if collection == PALETTES:
            self.entries.pop(eid, None)
        elif collection == TILESETS:
            self.tiles.pop(eid, None)
