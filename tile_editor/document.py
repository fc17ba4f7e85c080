"""
Project document for the tile editor.
Owns palettes, tilesets, effect layers and maps by stable id and
keeps references between them consistent.
"""

import logging
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from .config import CONFIG, EditorConfig
from .errors import (
    GestureInProgress,
    IndexOutOfRange,
    InvalidDimension,
    InvalidName,
    NameConflict,
    ReferencedElsewhere,
)
from .models import (
    EMPTY,
    BlendMode,
    ChangeEvent,
    ChangeKind,
    EffectLayer,
    Map,
    MapLayer,
    Palette,
    TileSet,
)

logger = logging.getLogger(__name__)

PALETTES = "palettes"
TILESETS = "tilesets"
EFFECT_LAYERS = "effect_layers"
MAPS = "maps"

COLLECTIONS = (PALETTES, TILESETS, EFFECT_LAYERS, MAPS)

DEFAULT_NAMES = {
    PALETTES: "Palette",
    TILESETS: "Tileset",
    EFFECT_LAYERS: "Effect Layer",
    MAPS: "Map",
}


class Document:
    def __init__(self, config: Optional[EditorConfig] = None):
        self.config = config or CONFIG
        self.palettes: Dict[int, Palette] = {}
        self.tilesets: Dict[int, TileSet] = {}
        self.effect_layers: Dict[int, EffectLayer] = {}
        self.maps: Dict[int, Map] = {}
        self.next_id = 0

        # (ChangeEvent) -> None, called after every successful mutation
        self.callbacks: List[Callable[[ChangeEvent], None]] = []
        self._gesture_owner = None

    # --- Lookup ---

    def collection(self, kind: str) -> Dict:
        if kind not in COLLECTIONS:
            raise KeyError(f"Unknown collection '{kind}'")
        return getattr(self, kind)

    def get(self, kind: str, eid: int):
        entities = self.collection(kind)
        if eid not in entities:
            raise KeyError(f"No entry {eid} in {kind}")
        return entities[eid]

    def list_entities(self, kind: str) -> List[Tuple[int, str]]:
        """(id, name) pairs in creation order, for populating project trees."""
        return [(eid, e.name) for eid, e in self.collection(kind).items()]

    def find(self, kind: str, name: str) -> Optional[int]:
        for eid, entity in self.collection(kind).items():
            if entity.name == name:
                return eid
        return None

    def unique_name(self, kind: str, base: str) -> str:
        """Returns base, or "base N" for the smallest N >= 2 not yet taken."""
        taken = {e.name for e in self.collection(kind).values()}
        if base not in taken:
            return base
        n = 2
        while f"{base} {n}" in taken:
            n += 1
        return f"{base} {n}"

    # --- Notifications and gesture lock ---

    def notify(self, kind: ChangeKind, collection: str, eid: Optional[int] = None):
        event = ChangeEvent(kind, collection, eid)
        for callback in list(self.callbacks):
            callback(event)

    @property
    def gesture_active(self) -> bool:
        return self._gesture_owner is not None

    def begin_gesture(self, owner):
        if self._gesture_owner is not None and self._gesture_owner is not owner:
            raise GestureInProgress("Another gesture is already in progress")
        self._gesture_owner = owner

    def end_gesture(self, owner):
        if self._gesture_owner is owner:
            self._gesture_owner = None

    def check_idle(self, owner=None):
        """Rejects mutation while a gesture belonging to someone else is open."""
        if self._gesture_owner is not None and self._gesture_owner is not owner:
            logger.info("Rejected document mutation during gesture")
            raise GestureInProgress("Document is locked by an in-progress gesture")

    def _add(self, kind: str, entity) -> int:
        eid = self.next_id
        self.next_id += 1
        self.collection(kind)[eid] = entity
        logger.debug("Added %s %d '%s'", kind, eid, entity.name)
        self.notify(ChangeKind.ENTITY_LIST, kind, eid)
        return eid

    # --- Creation ---

    def add_palette(self, name: Optional[str] = None, size: Optional[int] = None) -> int:
        self.check_idle()
        name = self._new_name(PALETTES, name)
        palette = Palette.grayscale(name, size if size is not None else self.config.palette_size)
        return self._add(PALETTES, palette)

    def add_tileset(
        self,
        palette_id: Optional[int] = None,
        name: Optional[str] = None,
        tile_count: Optional[int] = None,
        columns: Optional[int] = None,
    ) -> int:
        self.check_idle()
        if palette_id is not None:
            self.get(PALETTES, palette_id)
        name = self._new_name(TILESETS, name)
        cfg = self.config
        tileset = TileSet(
            name,
            palette_id,
            tile_width=cfg.tile_width,
            tile_height=cfg.tile_height,
            tile_count=tile_count if tile_count is not None else cfg.tileset_tile_count,
            columns=columns if columns is not None else cfg.tileset_columns,
            depth=cfg.tile_depth,
        )
        if palette_id is None:
            palette_id = next(iter(self.palettes), None)
            if palette_id is None:
                palette_id = self.add_palette()
            tileset.palette_id = palette_id
        return self._add(TILESETS, tileset)

    def add_effect_layer(
        self,
        tileset_id: Optional[int] = None,
        name: Optional[str] = None,
        blend_mode: BlendMode = BlendMode.NORMAL,
        alpha: int = 255,
    ) -> int:
        self.check_idle()
        if tileset_id is not None:
            self.get(TILESETS, tileset_id)
        if not 0 <= alpha <= 255:
            raise InvalidDimension(f"Alpha must be within 0-255, got {alpha}")
        name = self._new_name(EFFECT_LAYERS, name)
        layer = EffectLayer(
            name,
            tileset_id,
            self.config.map_width,
            self.config.map_height,
            blend_mode=blend_mode,
            alpha=alpha,
        )
        return self._add(EFFECT_LAYERS, layer)

    def add_map(
        self,
        tileset_id: Optional[int] = None,
        name: Optional[str] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> int:
        self.check_idle()
        if tileset_id is None:
            tileset_id = next(iter(self.tilesets), None)
        else:
            self.get(TILESETS, tileset_id)
        name = self._new_name(MAPS, name)
        width = width if width is not None else self.config.map_width
        height = height if height is not None else self.config.map_height
        new_map = Map(name, width, height)
        if tileset_id is not None:
            new_map.layers.append(MapLayer("Layer 1", tileset_id, new_map.width, new_map.height))
        return self._add(MAPS, new_map)

    def _new_name(self, kind: str, name: Optional[str]) -> str:
        if name is None:
            return self.unique_name(kind, DEFAULT_NAMES[kind])
        self._check_name(kind, name)
        return name

    def _check_name(self, kind: str, name: str, exclude: Optional[int] = None):
        if not name or not name.strip():
            raise InvalidName("Name must not be empty")
        other = self.find(kind, name)
        if other is not None and other != exclude:
            logger.info("Name conflict in %s: '%s'", kind, name)
            raise NameConflict(kind, name)

    # --- Map composition ---

    def add_map_layer(
        self, map_id: int, tileset_id: Optional[int] = None, name: Optional[str] = None
    ) -> int:
        self.check_idle()
        target = self.get(MAPS, map_id)
        if tileset_id is not None:
            self.get(TILESETS, tileset_id)
        name = name or f"Layer {len(target.layers) + 1}"
        target.layers.append(MapLayer(name, tileset_id, target.width, target.height))
        self.notify(ChangeKind.ENTITY, MAPS, map_id)
        return len(target.layers) - 1

    def remove_map_layer(self, map_id: int, index: int):
        self.check_idle()
        target = self.get(MAPS, map_id)
        if not 0 <= index < len(target.layers):
            raise IndexOutOfRange(f"Map '{target.name}' has no layer {index}")
        del target.layers[index]
        self.notify(ChangeKind.ENTITY, MAPS, map_id)

    def attach_effect_layer(self, map_id: int, effect_id: int):
        self.check_idle()
        target = self.get(MAPS, map_id)
        self.get(EFFECT_LAYERS, effect_id)
        if effect_id not in target.effect_layer_ids:
            target.effect_layer_ids.append(effect_id)
            self.notify(ChangeKind.ENTITY, MAPS, map_id)

    def detach_effect_layer(self, map_id: int, effect_id: int):
        self.check_idle()
        target = self.get(MAPS, map_id)
        if effect_id in target.effect_layer_ids:
            target.effect_layer_ids.remove(effect_id)
            self.notify(ChangeKind.ENTITY, MAPS, map_id)

    def set_tileset_palette(self, tileset_id: int, palette_id: int):
        """Points a tileset at another palette large enough for its pixels."""
        self.check_idle()
        tileset = self.get(TILESETS, tileset_id)
        palette = self.get(PALETTES, palette_id)
        highest = max(int(t.max()) for t in tileset.tiles)
        if highest >= len(palette):
            raise IndexOutOfRange(
                f"Tileset '{tileset.name}' uses entry {highest}, "
                f"palette '{palette.name}' has {len(palette)}"
            )
        tileset.palette_id = palette_id
        self.notify(ChangeKind.ENTITY, TILESETS, tileset_id)

    # --- Rename / duplicate / remove ---

    def rename(self, kind: str, eid: int, new_name: str):
        self.check_idle()
        entity = self.get(kind, eid)
        if entity.name == new_name:
            return
        self._check_name(kind, new_name, exclude=eid)
        logger.debug("Renamed %s %d '%s' -> '%s'", kind, eid, entity.name, new_name)
        entity.name = new_name
        self.notify(ChangeKind.ENTITY, kind, eid)

    def duplicate(self, kind: str, eid: int) -> int:
        self.check_idle()
        entity = self.get(kind, eid)
        name = self.unique_name(kind, f"{entity.name} (Copy)")
        return self._add(kind, entity.copy(name))

    def referrers(self, kind: str, eid: int) -> List[Tuple[str, int, Optional[int]]]:
        """
        Entities holding a reference to (kind, eid), as (collection, id, layer_index)
        triples. layer_index is set for layers owned by a map.
        """
        self.get(kind, eid)
        found = []
        if kind == PALETTES:
            found = [(TILESETS, tid, None) for tid, t in self.tilesets.items() if t.palette_id == eid]
        elif kind == TILESETS:
            found = [(EFFECT_LAYERS, lid, None) for lid, _, layer in self._layers_using(eid) if lid is not None]
            found += [(MAPS, mid, idx) for _, (mid, idx), layer in self._layers_using(eid) if mid is not None]
        elif kind == EFFECT_LAYERS:
            found = [(MAPS, mid, None) for mid, m in self.maps.items() if eid in m.effect_layer_ids]
        return found

    def _layers_using(
        self, tileset_id: int
    ) -> Iterator[Tuple[Optional[int], Tuple[Optional[int], Optional[int]], MapLayer]]:
        for lid, layer in self.effect_layers.items():
            if layer.tileset_id == tileset_id:
                yield lid, (None, None), layer
        for mid, m in self.maps.items():
            for idx, layer in enumerate(m.layers):
                if layer.tileset_id == tileset_id:
                    yield None, (mid, idx), layer

    def layers_using(self, tileset_id: int) -> List[MapLayer]:
        return [layer for _, _, layer in self._layers_using(tileset_id)]

    def remove(self, kind: str, eid: int, cascade: bool = False):
        self.check_idle()
        self.get(kind, eid)
        refs = self.referrers(kind, eid)
        if refs and not cascade:
            logger.info("Refused to remove %s %d: %d referrer(s)", kind, eid, len(refs))
            raise ReferencedElsewhere(
                f"{kind} {eid} is still referenced by {len(refs)} entit{'y' if len(refs) == 1 else 'ies'}",
                refs,
            )
        self._remove_cascading(kind, eid)

    def _remove_cascading(self, kind: str, eid: int):
        if kind == PALETTES:
            for tid in [tid for tid, t in self.tilesets.items() if t.palette_id == eid]:
                self._remove_cascading(TILESETS, tid)
        elif kind == TILESETS:
            for lid, (mid, _), layer in list(self._layers_using(eid)):
                layer.detach()
                if lid is not None:
                    self.notify(ChangeKind.CONTENT, EFFECT_LAYERS, lid)
                else:
                    self.notify(ChangeKind.CONTENT, MAPS, mid)
        elif kind == EFFECT_LAYERS:
            for mid, m in self.maps.items():
                if eid in m.effect_layer_ids:
                    m.effect_layer_ids.remove(eid)
                    self.notify(ChangeKind.ENTITY, MAPS, mid)

        entity = self.collection(kind).pop(eid)
        logger.debug("Removed %s %d '%s'", kind, eid, entity.name)
        self.notify(ChangeKind.ENTITY_LIST, kind, eid)

    # --- Resizing ---

    def resize_tileset(self, tileset_id: int, columns: int):
        """
        Changes the column count of a tileset. Tiles keep their linear index,
        so layer references (which are linear indices) stay valid unchanged.
        """
        self.check_idle()
        tileset = self.get(TILESETS, tileset_id)
        if columns < 1:
            raise InvalidDimension(f"Column count must be at least 1, got {columns}")
        if columns == tileset.columns:
            return
        logger.debug("Tileset %d columns %d -> %d", tileset_id, tileset.columns, columns)
        tileset.columns = columns
        self.notify(ChangeKind.ENTITY, TILESETS, tileset_id)

    def set_tile_count(self, tileset_id: int, count: int, cascade: bool = False):
        """
        Grows a tileset with blank tiles or truncates it. Truncating tiles that
        layers still reference needs cascade, which clears those cells.
        """
        self.check_idle()
        tileset = self.get(TILESETS, tileset_id)
        if count < 1:
            raise InvalidDimension(f"Tile count must be at least 1, got {count}")
        if count == tileset.tile_count:
            return

        if count < tileset.tile_count:
            affected = [
                (lid, mid, layer)
                for lid, (mid, _), layer in self._layers_using(tileset_id)
                if layer.references_beyond(count)
            ]
            if affected and not cascade:
                raise ReferencedElsewhere(
                    f"Tiles past {count} in tileset {tileset_id} are used by {len(affected)} layer(s)",
                    [(EFFECT_LAYERS, lid, None) if lid is not None else (MAPS, mid, None)
                     for lid, mid, _ in affected],
                )
            del tileset.tiles[count:]
            for lid, mid, layer in affected:
                layer.cells[layer.cells >= count] = EMPTY
                if lid is not None:
                    self.notify(ChangeKind.CONTENT, EFFECT_LAYERS, lid)
                else:
                    self.notify(ChangeKind.CONTENT, MAPS, mid)
        else:
            tileset.tiles.extend(tileset.blank_tile() for _ in range(count - tileset.tile_count))

        logger.debug("Tileset %d now holds %d tiles", tileset_id, count)
        self.notify(ChangeKind.ENTITY, TILESETS, tileset_id)
