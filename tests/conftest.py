"""
Pytest configuration and shared fixtures for tile editor tests.
"""

import pytest
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from tile_editor.config import EditorConfig
from tile_editor.document import Document
from tile_editor.editor import TileEditor


@pytest.fixture
def config():
    """Small geometry: 2x2 pixel tiles, 8 tiles in 4 columns, 6x5 maps."""
    return EditorConfig(
        tile_width=2,
        tile_height=2,
        palette_size=4,
        tileset_tile_count=8,
        tileset_columns=4,
        map_width=6,
        map_height=5,
    )


@pytest.fixture
def document(config):
    """Create an empty Document."""
    return Document(config)


@pytest.fixture
def palette_id(document):
    return document.add_palette()


@pytest.fixture
def tileset_id(document, palette_id):
    return document.add_tileset(palette_id)


@pytest.fixture
def map_id(document, tileset_id):
    """Map with one layer painting from tileset_id."""
    return document.add_map(tileset_id)


@pytest.fixture
def editor(document):
    return TileEditor(document)


@pytest.fixture
def tileset_session(editor, tileset_id):
    """Editor session on the tileset's pixel canvas (8x4 pixels)."""
    return editor.open_tileset(tileset_id)


@pytest.fixture
def layer_session(editor, map_id):
    """Editor session on the map's first layer (6x5 cells, all empty)."""
    return editor.open_map_layer(map_id, 0)


@pytest.fixture
def layer(document, map_id):
    return document.maps[map_id].layers[0]


@pytest.fixture
def events(document):
    """Records every ChangeEvent the document emits."""
    recorded = []
    document.callbacks.append(recorded.append)
    return recorded
