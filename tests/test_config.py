"""
Tests for configuration loading and logging setup.
"""

import logging

from rich.logging import RichHandler

from tile_editor.config import EditorConfig
from tile_editor.log import setup_logging


class TestConfig:
    """Test EditorConfig and TOML loading."""

    def test_defaults(self):
        config = EditorConfig()
        assert (config.tile_width, config.tile_height, config.tile_depth) == (8, 8, 8)
        assert config.max_undo_history == 100
        assert config.zoom_levels == (1, 16)

    def test_missing_file_uses_defaults(self, tmp_path):
        config = EditorConfig.load_from_toml(str(tmp_path / "missing.toml"))
        assert config == EditorConfig()

    def test_load_editor_section(self, tmp_path):
        path = tmp_path / "tile_editor.toml"
        path.write_text("[editor]\ntile_width = 16\ntile_depth = 4\nmax_undo_history = 20\n")
        config = EditorConfig.load_from_toml(str(path))
        assert config.tile_width == 16
        assert config.tile_depth == 4
        assert config.max_undo_history == 20
        assert config.tile_height == 8

    def test_malformed_file_uses_defaults(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("[editor\ntile_width = ")
        assert EditorConfig.load_from_toml(str(path)) == EditorConfig()

    def test_invalid_value_uses_defaults(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text('[editor]\ntile_width = "wide"\n')
        assert EditorConfig.load_from_toml(str(path)).tile_width == 8


class TestLogging:
    """Test the rich logging setup."""

    def test_setup_installs_single_rich_handler(self):
        setup_logging("DEBUG")
        logger = setup_logging("INFO")
        assert logger.name == "tile_editor"
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], RichHandler)
        assert logger.level == logging.INFO

    def test_unknown_level_falls_back_to_warning(self):
        assert setup_logging("chatty").level == logging.WARNING
