"""
Tests for tool dispatch: modes, gestures and single-click tools.
"""

import numpy as np
import pytest

from tile_editor import tools
from tile_editor.config import EditorConfig
from tile_editor.document import Document, TILESETS
from tile_editor.editor import TileEditor
from tile_editor.errors import GestureInProgress, IndexOutOfRange
from tile_editor.models import EMPTY, Button, ChangeEvent, ChangeKind, Region, ToolMode
from tile_editor.surface import Surface


def painted(layer):
    """Set of (x, y) cells holding a tile."""
    ys, xs = np.nonzero(layer.cells != EMPTY)
    return set(zip(xs.tolist(), ys.tolist()))


def stroke(session, mode, *points, button=Button.PRIMARY):
    session.activate(mode)
    session.press(*points[0], button=button)
    for p in points[1:]:
        session.drag(*p)
    session.release(*points[-1])


class TestToolModes:
    """Test the tool mode state machine."""

    def test_modes_are_exclusive(self, layer_session):
        layer_session.activate(ToolMode.LINE)
        layer_session.activate(ToolMode.RECTANGLE)
        assert layer_session.mode == ToolMode.RECTANGLE
        assert layer_session.editing_mode == ToolMode.RECTANGLE

    def test_zoom_keeps_editing_mode(self, layer_session):
        layer_session.activate(ToolMode.FILL)
        layer_session.activate(ToolMode.ZOOM_IN)
        assert layer_session.mode == ToolMode.ZOOM_IN
        assert layer_session.editing_mode == ToolMode.FILL
        layer_session.restore_editing_mode()
        assert layer_session.mode == ToolMode.FILL

    def test_switching_mode_cancels_gesture(self, layer_session, layer):
        layer_session.activate(ToolMode.PEN)
        layer_session.press(0, 0)
        layer_session.activate(ToolMode.LINE)
        assert layer_session.gesture is None
        assert painted(layer) == set()


class TestSelect:
    """Test the select tool."""

    def test_drag_defines_region_on_release(self, layer_session):
        layer_session.activate(ToolMode.SELECT)
        layer_session.press(1, 1)
        layer_session.drag(3, 2)
        assert layer_session.preview_region == Region(1, 1, 3, 2)
        assert layer_session.region is None
        layer_session.release(3, 2)
        assert layer_session.region == Region(1, 1, 3, 2)

    def test_click_selects_single_cell(self, layer_session):
        stroke(layer_session, ToolMode.SELECT, (4, 4))
        assert layer_session.region == Region(4, 4, 1, 1)

    def test_reverse_drag(self, layer_session):
        stroke(layer_session, ToolMode.SELECT, (3, 3), (1, 0))
        assert layer_session.region == Region(1, 0, 3, 4)

    def test_select_does_not_touch_history(self, layer_session):
        stroke(layer_session, ToolMode.SELECT, (0, 0), (2, 2))
        assert not layer_session.undo_mgr.can_undo


class TestPen:
    """Test freehand painting."""

    def test_stroke_is_one_undo_step(self, layer_session, layer):
        stroke(layer_session, ToolMode.PEN, (0, 0), (1, 0), (1, 0), (2, 0))
        assert painted(layer) == {(0, 0), (1, 0), (2, 0)}
        assert len(layer_session.undo_mgr.undo_stack) == 1

        layer_session.undo()
        assert painted(layer) == set()

    def test_stroke_fills_gaps_between_samples(self, layer_session, layer):
        stroke(layer_session, ToolMode.PEN, (0, 0), (4, 0))
        assert painted(layer) == {(x, 0) for x in range(5)}

    def test_secondary_button_uses_right_tile(self, editor, tileset_id, layer_session, layer):
        editor.selection.set_left_tile(tileset_id, 1)
        editor.selection.set_right_tile(tileset_id, 3)
        stroke(layer_session, ToolMode.PEN, (1, 1), button=Button.SECONDARY)
        stroke(layer_session, ToolMode.PEN, (2, 1))
        assert layer.cells[1, 1] == 3
        assert layer.cells[1, 2] == 1

    def test_document_untouched_until_release(self, layer_session, layer):
        layer_session.activate(ToolMode.PEN)
        layer_session.press(0, 0)
        layer_session.drag(2, 2)
        assert painted(layer) == set()
        assert set(layer_session.preview) == {(0, 0), (1, 1), (2, 2)}
        layer_session.release(2, 2)
        assert painted(layer) == {(0, 0), (1, 1), (2, 2)}

    def test_positions_are_clamped(self, layer_session, layer):
        stroke(layer_session, ToolMode.PEN, (-5, 100))
        assert painted(layer) == {(0, 4)}

    def test_tileset_pen_paints_pixel(self, editor, document, palette_id, tileset_id, tileset_session, events):
        editor.set_selected_left_entry(palette_id, 3)
        stroke(tileset_session, ToolMode.PEN, (2, 1))
        assert document.tilesets[tileset_id].tiles[1][1, 0] == 3
        assert ChangeEvent(ChangeKind.CONTENT, TILESETS, tileset_id) in events


class TestShapes:
    """Test rectangle, filled rectangle and line tools."""

    def test_rectangle_paints_border_only(self, layer_session, layer):
        stroke(layer_session, ToolMode.RECTANGLE, (0, 0), (2, 2))
        assert painted(layer) == {(0, 0), (1, 0), (2, 0), (0, 1), (2, 1), (0, 2), (1, 2), (2, 2)}
        assert layer.cells[1, 1] == EMPTY

    def test_rectangle_preview_follows_drag(self, layer_session):
        layer_session.activate(ToolMode.RECTANGLE)
        layer_session.press(0, 0)
        layer_session.drag(4, 4)
        layer_session.drag(1, 1)
        assert set(layer_session.preview) == {(0, 0), (1, 0), (0, 1), (1, 1)}
        layer_session.cancel()

    def test_filled_rectangle(self, layer_session, layer):
        stroke(layer_session, ToolMode.FILLED_RECTANGLE, (1, 1), (3, 2))
        assert painted(layer) == {(x, y) for x in range(1, 4) for y in range(1, 3)}
        assert len(layer_session.undo_mgr.undo_stack) == 1

    def test_line_matches_rasterizer_in_both_directions(self, document, tileset_id, editor):
        first = document.add_map(tileset_id)
        second = document.add_map(tileset_id)

        stroke(editor.open_map_layer(first, 0), ToolMode.LINE, (0, 0), (5, 3))
        stroke(editor.open_map_layer(second, 0), ToolMode.LINE, (5, 3), (0, 0))

        expected = set(tools.line_points(0, 0, 5, 3))
        assert painted(document.maps[first].layers[0]) == expected
        assert painted(document.maps[second].layers[0]) == expected


class TestFill:
    """Test flood fill."""

    def test_fill_empty_layer(self, layer_session, layer):
        stroke(layer_session, ToolMode.FILL, (2, 2))
        assert np.all(layer.cells == 0)

    def test_fill_same_value_is_noop(self, layer_session, layer):
        layer_session.activate(ToolMode.FILL)
        layer_session.press(2, 2)
        before = layer.cells.copy()
        assert not layer_session.fill(0, 0)
        assert np.array_equal(layer.cells, before)
        assert len(layer_session.undo_mgr.undo_stack) == 1

    def test_fill_uniform_tileset_with_same_entry(self, document, tileset_id, tileset_session):
        before = [t.copy() for t in document.tilesets[tileset_id].tiles]
        stroke(tileset_session, ToolMode.FILL, (3, 3))
        assert all(np.array_equal(a, b) for a, b in zip(document.tilesets[tileset_id].tiles, before))
        assert not tileset_session.undo_mgr.can_undo

    def test_fill_respects_borders(self, layer_session, layer):
        stroke(layer_session, ToolMode.RECTANGLE, (0, 0), (2, 2))
        layer_session.undo_mgr.clear()
        layer_session.selection.set_left_tile(layer.tileset_id, 4)
        stroke(layer_session, ToolMode.FILL, (1, 1))
        assert layer.cells[1, 1] == 4
        assert layer.cells[0, 4] == EMPTY
        layer_session.undo()
        assert layer.cells[1, 1] == EMPTY


class TestFlipAndRotate:
    """Test region transforms."""

    def test_flip_horizontal_region(self, layer_session, layer):
        layer.cells[0, 0:3] = [1, 2, 3]
        layer_session.select(Region(0, 0, 3, 1))
        stroke(layer_session, ToolMode.FLIP_HORIZONTAL, (0, 0))
        assert layer.cells[0, 0:3].tolist() == [3, 2, 1]
        assert len(layer_session.undo_mgr.undo_stack) == 1

    def test_flip_vertical_whole_surface(self, layer_session, layer):
        layer.cells[0, :] = 1
        layer_session.flip_vertical()
        assert np.all(layer.cells[4, :] == 1)
        assert np.all(layer.cells[0, :] == EMPTY)

    @pytest.mark.parametrize("horizontal", [True, False])
    def test_flip_partial_tileset_twice_restores(self, editor, document, tileset_id, horizontal):
        document.set_tile_count(tileset_id, 5)
        tileset = document.tilesets[tileset_id]
        tileset.tiles[0][:] = [[1, 2], [0, 3]]
        tileset.tiles[4][:] = 3
        before = [t.copy() for t in tileset.tiles]
        total = sum(int(t.sum()) for t in tileset.tiles)
        session = editor.open_tileset(tileset_id)
        flip = session.flip_horizontal if horizontal else session.flip_vertical

        flip()
        assert sum(int(t.sum()) for t in tileset.tiles) == total
        flip()

        assert all(np.array_equal(a, b) for a, b in zip(tileset.tiles, before))

    def test_rotate_swaps_region_dimensions(self, layer_session, layer):
        layer.cells[0:2, 0:3] = [[1, 2, 3], [4, 5, 6]]
        layer_session.select(Region(0, 0, 3, 2))
        stroke(layer_session, ToolMode.ROTATE, (0, 0))

        assert layer.cells[0:3, 0:2].tolist() == [[4, 1], [5, 2], [6, 3]]
        assert layer.cells[0, 2] == EMPTY
        assert layer_session.region == Region(0, 0, 2, 3)

    def test_rotate_undo(self, layer_session, layer):
        layer.cells[0:2, 0:3] = [[1, 2, 3], [4, 5, 6]]
        before = layer.cells.copy()
        layer_session.select(Region(0, 0, 3, 2))
        layer_session.rotate()
        layer_session.undo()
        assert np.array_equal(layer.cells, before)


class TestZoom:
    """Test view zoom tools."""

    def test_zoom_press_changes_scale_only(self, layer_session, layer):
        stroke(layer_session, ToolMode.ZOOM_IN, (2, 3))
        assert layer_session.zoom == 8
        assert layer_session.zoom_focus == (2, 3)
        assert painted(layer) == set()
        assert not layer_session.undo_mgr.can_undo

    def test_zoom_is_bounded(self, layer_session):
        for _ in range(10):
            layer_session.zoom_in()
        assert layer_session.zoom == 16
        for _ in range(10):
            layer_session.zoom_out()
        assert layer_session.zoom == 1


class TestGestureLifecycle:
    """Test cancel and the document lock during gestures."""

    def test_cancel_leaves_document_unchanged(self, document, layer_session, layer):
        layer_session.activate(ToolMode.FILLED_RECTANGLE)
        layer_session.press(0, 0)
        layer_session.drag(3, 3)
        layer_session.cancel()

        assert painted(layer) == set()
        assert not layer_session.undo_mgr.can_undo
        assert not document.gesture_active

    def test_document_locked_during_gesture(self, document, layer_session):
        layer_session.activate(ToolMode.PEN)
        layer_session.press(0, 0)
        with pytest.raises(GestureInProgress):
            document.add_palette()
        with pytest.raises(GestureInProgress):
            layer_session.cut()
        layer_session.release(0, 0)
        document.add_palette()

    def test_second_press_is_ignored(self, layer_session, layer):
        layer_session.activate(ToolMode.LINE)
        layer_session.press(0, 0)
        layer_session.press(5, 4)
        layer_session.release(2, 0)
        assert painted(layer) == {(0, 0), (1, 0), (2, 0)}

    def test_entry_beyond_tile_depth_is_rejected(self):
        config = EditorConfig(tile_width=2, tile_height=2, tile_depth=4, palette_size=32)
        document = Document(config)
        pid = document.add_palette()
        tid = document.add_tileset(pid)
        editor = TileEditor(document)
        session = editor.open_tileset(tid)
        editor.set_selected_left_entry(pid, 20)

        with pytest.raises(IndexOutOfRange):
            session.press(0, 0)
        assert session.gesture is None
        assert not document.gesture_active


class TestSurfaceInterface:
    """Test the surface base class contract."""

    def test_incomplete_surface_cannot_be_created(self, document):
        class WidthOnly(Surface):
            @property
            def width(self):
                return 1

        with pytest.raises(TypeError):
            WidthOnly(document)
