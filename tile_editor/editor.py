"""
Tile Editor facade.

Ties the document, the per-palette selection memory and the current
editing session together for a presentation layer. Opening another
target discards the previous session's region, clipboard and history
but keeps the chosen tool.
"""

import logging
from typing import List, Optional, Tuple

from .config import CONFIG, EditorConfig
from .document import EFFECT_LAYERS, MAPS, PALETTES, TILESETS, Document
from .errors import EditorError
from .log import setup_logging
from .models import Button, ChangeEvent, ChangeKind, Palette, Region, ToolMode
from .selection import SelectionModel
from .session import EditSession
from .surface import LayerSurface, Surface, TileSetSurface

logger = logging.getLogger(__name__)


class TileEditor:
    def __init__(self, document: Optional[Document] = None, config: Optional[EditorConfig] = None):
        self.config = config or (document.config if document else CONFIG)
        self.document = document or Document(self.config)
        self.selection = SelectionModel(self.document)
        self.session: Optional[EditSession] = None
        self._mode = ToolMode.PEN
        self.document.callbacks.append(self._on_change)

    @classmethod
    def from_config_file(cls, path: str = "tile_editor.toml") -> "TileEditor":
        config = EditorConfig.load_from_toml(path)
        setup_logging(config.log_level)
        return cls(config=config)

    # --- Sessions ---

    def open_tileset(self, tileset_id: int) -> EditSession:
        self.document.get(TILESETS, tileset_id)
        return self._open(TileSetSurface(self.document, tileset_id))

    def open_map_layer(self, map_id: int, layer_index: int) -> EditSession:
        return self._open(LayerSurface.for_map_layer(self.document, map_id, layer_index))

    def open_effect_layer(self, effect_id: int) -> EditSession:
        return self._open(LayerSurface.for_effect_layer(self.document, effect_id))

    def _open(self, surface: Surface) -> EditSession:
        self.close_session()
        self.session = EditSession(
            self.document, surface, self.selection, mode=self._mode, config=self.config
        )
        logger.debug("Opened session on %s", surface.target)
        return self.session

    def close_session(self):
        if self.session is not None:
            self._mode = self.session.editing_mode
            self.session.close()
            self.session = None

    def _active(self) -> EditSession:
        if self.session is None or self.session.closed:
            raise EditorError("No open editing session")
        return self.session

    # --- Queries ---

    @property
    def tool_mode(self) -> ToolMode:
        return self.session.mode if self.session else self._mode

    @property
    def active_region(self) -> Optional[Region]:
        return self.session.region if self.session else None

    def entities(self, kind: str) -> List[Tuple[int, str]]:
        return self.document.list_entities(kind)

    @property
    def selected_palette_id(self) -> Optional[int]:
        """Palette of the open tileset, or of the open layer's tileset."""
        if self.session is None or self.session.closed:
            return None
        surface = self.session.surface
        tileset = surface.tileset
        return None if tileset is None else tileset.palette_id

    def get_selected_palette(self) -> Optional[Palette]:
        palette_id = self.selected_palette_id
        return None if palette_id is None else self.document.palettes.get(palette_id)

    def get_selected_left_entry(self) -> int:
        palette_id = self.selected_palette_id
        return 0 if palette_id is None else self.selection.get_left_entry(palette_id)

    def get_selected_right_entry(self) -> int:
        palette_id = self.selected_palette_id
        return 0 if palette_id is None else self.selection.get_right_entry(palette_id)

    # --- Commands ---

    def set_selected_left_entry(self, palette_id: int, index: int):
        self.selection.set_left_entry(palette_id, index)

    def set_selected_right_entry(self, palette_id: int, index: int):
        self.selection.set_right_entry(palette_id, index)

    def activate_tool(self, mode: ToolMode):
        if self.session and not self.session.closed:
            self.session.activate(mode)
        if not mode.is_zoom:
            self._mode = mode

    def press(self, x: int, y: int, button: Button = Button.PRIMARY):
        self._active().press(x, y, button)

    def drag(self, x: int, y: int):
        self._active().drag(x, y)

    def release(self, x: int, y: int):
        self._active().release(x, y)

    def cancel(self):
        self._active().cancel()

    def cut(self) -> bool:
        return self._active().cut()

    def copy(self) -> bool:
        return self._active().copy()

    def paste(self) -> bool:
        return self._active().paste()

    def select_all(self):
        self._active().select_all()

    def undo(self) -> bool:
        return self._active().undo()

    def redo(self) -> bool:
        return self._active().redo()

    def resize_tileset(self, tileset_id: int, columns: int):
        self.document.resize_tileset(tileset_id, columns)

    def add(self, kind: str, name: Optional[str] = None) -> int:
        """Adds an entity of the given kind with default contents."""
        if kind == PALETTES:
            return self.document.add_palette(name)
        if kind == TILESETS:
            return self.document.add_tileset(name=name)
        if kind == EFFECT_LAYERS:
            return self.document.add_effect_layer(name=name)
        if kind == MAPS:
            return self.document.add_map(name=name)
        raise KeyError(kind)

    def rename(self, kind: str, eid: int, new_name: str):
        self.document.rename(kind, eid, new_name)

    def duplicate(self, kind: str, eid: int) -> int:
        return self.document.duplicate(kind, eid)

    def remove(self, kind: str, eid: int, cascade: bool = False):
        self.document.remove(kind, eid, cascade=cascade)

    # --- Document events ---

    def _on_change(self, event: ChangeEvent):
        if event.kind == ChangeKind.ENTITY_LIST and event.entity_id not in self.document.collection(event.collection):
            self.selection.forget(event.collection, event.entity_id)
        elif event.kind == ChangeKind.ENTITY and event.collection == TILESETS:
            tileset = self.document.tilesets.get(event.entity_id)
            left = self.selection.get_left_tile(event.entity_id)
            right = self.selection.get_right_tile(event.entity_id)
            if tileset is not None and max(left, right) >= tileset.tile_count:
                self.selection.tiles[event.entity_id] = (
                    min(left, tileset.tile_count - 1),
                    min(right, tileset.tile_count - 1),
                )

        if self.session is not None and not self.session.surface.is_alive():
            self.close_session()
