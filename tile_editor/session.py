"""
Editing session: tool dispatch, gestures, region selection, clipboard and
undo for one surface.

A gesture (press, drags, release) is held here as pending cells and only
reaches the document on release, as a single undo record.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import numpy as np

from . import tools
from .config import CONFIG, EditorConfig
from .document import Document
from .errors import EditorError, GestureInProgress
from .models import (
    UNSET,
    Button,
    ChangeEvent,
    ChangeKind,
    ClipboardSnapshot,
    Region,
    ToolMode,
)
from .selection import SelectionModel
from .surface import Surface
from .undo_manager import UndoManager

logger = logging.getLogger(__name__)

# Modes whose gesture spans press, drags and release
GESTURE_MODES = (
    ToolMode.SELECT,
    ToolMode.PEN,
    ToolMode.RECTANGLE,
    ToolMode.FILLED_RECTANGLE,
    ToolMode.LINE,
)


@dataclass
class Gesture:
    mode: ToolMode
    button: Button
    anchor: Tuple[int, int]
    last: Tuple[int, int]
    value: Optional[int] = None
    pending: Dict[Tuple[int, int], int] = field(default_factory=dict)
    region: Optional[Region] = None


class EditSession:
    def __init__(
        self,
        document: Document,
        surface: Surface,
        selection: SelectionModel,
        mode: ToolMode = ToolMode.PEN,
        config: Optional[EditorConfig] = None,
    ):
        self.document = document
        self.surface = surface
        self.selection = selection
        self.config = config or document.config or CONFIG
        self.undo_mgr = UndoManager(self.config.max_undo_history)

        self.mode = ToolMode.PEN
        self._editing_mode = ToolMode.PEN
        self.region: Optional[Region] = None
        self.clipboard: Optional[ClipboardSnapshot] = None
        self.gesture: Optional[Gesture] = None

        self.zoom = self.config.default_zoom
        self.zoom_focus: Optional[Tuple[int, int]] = None

        self.closed = False
        self._notifying = False
        self._geometry = surface.geometry()
        self.document.callbacks.append(self._on_change)
        self.activate(mode)

    # --- Tool modes ---

    @property
    def editing_mode(self) -> ToolMode:
        """Mode that painting returns to once a zoom tool is put away."""
        return self._editing_mode

    def activate(self, mode: ToolMode):
        if self.gesture:
            self.cancel()
        self.mode = mode
        if not mode.is_zoom:
            self._editing_mode = mode
        self._notify_selection()

    def restore_editing_mode(self):
        self.activate(self._editing_mode)

    # --- Pointer input ---

    def press(self, x: int, y: int, button: Button = Button.PRIMARY):
        """
        Starts a gesture, or performs a single-click tool.
        A press while a gesture is already open is ignored.
        """
        self._check_open()
        if self.gesture:
            return
        x, y = self.surface.clamp(x, y)
        mode = self.mode

        if mode == ToolMode.ZOOM_IN:
            self.zoom_in(focus=(x, y))
        elif mode == ToolMode.ZOOM_OUT:
            self.zoom_out(focus=(x, y))
        elif mode == ToolMode.FLIP_HORIZONTAL:
            self.flip_horizontal()
        elif mode == ToolMode.FLIP_VERTICAL:
            self.flip_vertical()
        elif mode == ToolMode.ROTATE:
            self.rotate()
        elif mode == ToolMode.FILL:
            self.fill(x, y, button)
        elif mode in GESTURE_MODES:
            self.document.check_idle(self)
            value = None
            if mode != ToolMode.SELECT:
                value = self.surface.choose_value(self.selection, button)
            self.document.begin_gesture(self)
            self.gesture = Gesture(mode, button, (x, y), (x, y), value)
            self._update_gesture(x, y)

    def drag(self, x: int, y: int):
        if not self.gesture:
            return
        self._update_gesture(*self.surface.clamp(x, y))

    def release(self, x: int, y: int):
        if not self.gesture:
            return
        self._update_gesture(*self.surface.clamp(x, y))
        self._commit_gesture()

    def cancel(self):
        """Drops the open gesture; the document is left as it was before press."""
        if not self.gesture:
            return
        self.gesture = None
        self.document.end_gesture(self)
        self._notify_selection()

    @property
    def preview(self) -> Dict[Tuple[int, int], int]:
        """Cells the open gesture would paint on release."""
        return dict(self.gesture.pending) if self.gesture else {}

    @property
    def preview_region(self) -> Optional[Region]:
        return self.gesture.region if self.gesture else None

    def _update_gesture(self, x: int, y: int):
        g = self.gesture
        ax, ay = g.anchor

        if g.mode == ToolMode.SELECT:
            g.region = Region.from_corners(ax, ay, x, y)
        elif g.mode == ToolMode.PEN:
            # Join samples so fast pointer motion leaves no gaps
            for p in tools.line_points(g.last[0], g.last[1], x, y):
                g.pending[p] = g.value
        elif g.mode == ToolMode.RECTANGLE:
            g.pending = dict.fromkeys(tools.rect_points(ax, ay, x, y), g.value)
        elif g.mode == ToolMode.FILLED_RECTANGLE:
            g.pending = dict.fromkeys(tools.filled_rect_points(ax, ay, x, y), g.value)
        elif g.mode == ToolMode.LINE:
            g.pending = dict.fromkeys(tools.line_points(ax, ay, x, y), g.value)
        g.last = (x, y)

    def _commit_gesture(self):
        g = self.gesture
        self.gesture = None
        self.document.end_gesture(self)

        if g.mode == ToolMode.SELECT:
            self.region = g.region
            self._notify_selection()
            return
        self._apply(g.mode.name.lower(), g.pending)

    # --- Single-click tools ---

    def fill(self, x: int, y: int, button: Button = Button.PRIMARY) -> bool:
        self._check_editable()
        x, y = self.surface.clamp(x, y)
        value = self.surface.choose_value(self.selection, button)
        points = tools.flood_fill_points(
            self.surface.grid(), x, y, value, blocked=self.surface.blocked_value
        )
        if not points:
            return False
        return self._apply("fill", dict.fromkeys(points, value))

    def flip_horizontal(self) -> bool:
        return self._flip(horizontal=True)

    def flip_vertical(self) -> bool:
        return self._flip(horizontal=False)

    def _flip(self, horizontal: bool) -> bool:
        self._check_editable()
        region = self.target_region()
        block = tools.flip(self.surface.read_region(region), horizontal)
        label = "flip_horizontal" if horizontal else "flip_vertical"
        # Cells with no storage keep out of the mirror on both sides
        values = self._block_values(region.x, region.y, block, skip=self.surface.blocked_value)
        return self._apply(label, values)

    def rotate(self) -> bool:
        """
        Rotates the target region 90 degrees clockwise. The result is anchored
        at the same origin and clipped to the surface; uncovered cells are cleared.
        """
        self._check_editable()
        region = self.target_region()
        block = tools.rotate_clockwise(self.surface.read_region(region))
        rotated = Region(region.x, region.y, region.height, region.width)
        rotated = rotated.clip(self.surface.width, self.surface.height)

        values = {
            (x, y): self.surface.clear_value
            for y in range(region.y, region.bottom)
            for x in range(region.x, region.right)
        }
        values.update(
            self._block_values(rotated.x, rotated.y, block[: rotated.height, : rotated.width])
        )
        changed = self._apply("rotate", values)
        if self.region is not None:
            self.region = rotated
            self._notify_selection()
        return changed

    # --- Region and clipboard ---

    def target_region(self) -> Region:
        """Active region clipped to the surface, or the whole surface."""
        if self.region is not None:
            clipped = self.region.clip(self.surface.width, self.surface.height)
            if clipped is not None:
                return clipped
        return self.surface.bounds

    def select(self, region: Optional[Region]):
        self._check_open()
        self.region = None if region is None else region.clip(self.surface.width, self.surface.height)
        self._notify_selection()

    def select_all(self):
        self.select(self.surface.bounds)

    def copy(self) -> bool:
        """Copies the active region to the clipboard. Not undoable."""
        self._check_open()
        if self.region is None:
            return False
        self.clipboard = ClipboardSnapshot(self.surface.read_region(self.target_region()))
        return True

    def cut(self) -> bool:
        self._check_editable()
        if not self.copy():
            return False
        region = self.target_region()
        values = {
            (x, y): self.surface.clear_value
            for y in range(region.y, region.bottom)
            for x in range(region.x, region.right)
        }
        return self._apply("cut", values)

    def paste(self) -> bool:
        """
        Writes the clipboard at the active region's origin (surface origin when
        there is none), clipped to the surface. The pasted area becomes the
        active region.
        """
        self._check_editable()
        if self.clipboard is None:
            return False
        origin_x, origin_y = (self.region.x, self.region.y) if self.region else (0, 0)
        target = Region(origin_x, origin_y, self.clipboard.width, self.clipboard.height)
        target = target.clip(self.surface.width, self.surface.height)
        if target is None:
            return False

        block = self.clipboard.data[: target.height, : target.width]
        values = self._block_values(target.x, target.y, block, skip=UNSET)
        for value in set(values.values()):
            self.surface.validate_value(value)
        changed = self._apply("paste", values)
        self.region = target
        self._notify_selection()
        return changed

    # --- Undo ---

    def undo(self) -> bool:
        self._check_editable()
        if not self.undo_mgr.undo():
            return False
        self._notify_content()
        return True

    def redo(self) -> bool:
        self._check_editable()
        if not self.undo_mgr.redo():
            return False
        self._notify_content()
        return True

    # --- View ---

    def zoom_in(self, focus: Optional[Tuple[int, int]] = None):
        self.zoom = min(self.zoom * 2, self.config.zoom_levels[1])
        self.zoom_focus = focus
        self._notify_selection()

    def zoom_out(self, focus: Optional[Tuple[int, int]] = None):
        self.zoom = max(self.zoom // 2, self.config.zoom_levels[0])
        self.zoom_focus = focus
        self._notify_selection()

    # --- Lifecycle ---

    def close(self):
        if self.closed:
            return
        self.cancel()
        self.closed = True
        if self._on_change in self.document.callbacks:
            self.document.callbacks.remove(self._on_change)

    def _on_change(self, event: ChangeEvent):
        if self.closed or self._notifying:
            return
        if not self.surface.is_alive():
            logger.debug("Edit target %s removed; closing session", self.surface.target)
            self.close()
            return
        if event.kind == ChangeKind.ENTITY and self.surface.depends_on(event.collection, event.entity_id):
            self._drop_stale_values()
        if (event.collection, event.entity_id) != self.surface.target:
            return

        if event.kind == ChangeKind.ENTITY:
            geometry = self.surface.geometry()
            if geometry != self._geometry:
                if not self.surface.keeps_addresses(self._geometry):
                    self.undo_mgr.clear()
                self._geometry = geometry
                self.region = None
        elif event.kind == ChangeKind.CONTENT:
            # Someone else rewrote our cells; recorded old values are stale
            self.undo_mgr.clear()

    def _drop_stale_values(self):
        """
        Forgets history and clipboard holding values the surface no longer
        accepts, after its tileset shrank or its palette changed.
        """
        mgr = self.undo_mgr
        recorded = {
            value
            for record in mgr.undo_stack + mgr.redo_stack
            for change in record.changes
            for value in (change.old, change.new)
        }
        if not all(self.surface.accepts(v) for v in recorded):
            logger.debug("History on %s holds stale values; clearing", self.surface.target)
            mgr.clear()
        if self.clipboard is not None:
            held = set(int(v) for v in np.unique(self.clipboard.data)) - {UNSET}
            if not all(self.surface.accepts(v) for v in held):
                self.clipboard = None

    # --- Helpers ---

    def _check_open(self):
        if self.closed:
            raise EditorError("Edit session is closed")

    def _check_editable(self):
        self._check_open()
        if self.gesture:
            raise GestureInProgress("Finish or cancel the current gesture first")
        self.document.check_idle(self)

    def _block_values(
        self, x: int, y: int, block: np.ndarray, skip: Optional[int] = None
    ) -> Dict[Tuple[int, int], int]:
        """Maps block cells to surface positions; cells equal to skip are left out."""
        values = {}
        height, width = block.shape
        for j in range(height):
            for i in range(width):
                value = int(block[j, i])
                if value == skip:
                    continue
                if value == UNSET:
                    value = self.surface.clear_value
                values[(x + i, y + j)] = value
        return values

    def _apply(self, label: str, values: Dict[Tuple[int, int], int]) -> bool:
        changes = self.surface.apply(values)
        if not self.undo_mgr.push(label, self.surface, changes):
            return False
        logger.debug("%s changed %d cell(s) on %s", label, len(changes), self.surface.target)
        self._notify_content()
        return True

    def _notify_content(self):
        self._notifying = True
        try:
            self.surface.notify_changed()
        finally:
            self._notifying = False

    def _notify_selection(self):
        collection, eid = self.surface.target
        self._notifying = True
        try:
            self.document.notify(ChangeKind.SELECTION, collection, eid)
        finally:
            self._notifying = False
