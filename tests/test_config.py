"""
Tests for viewer configuration.
"""
import json
import logging

import pytest

from event_viewer.core import ViewerConfig, load_config, save_config


class TestViewerConfig:
    """Tests for ViewerConfig."""

    def test_defaults(self):
        """Test the default configuration."""
        config = ViewerConfig()

        assert config.page_size == 10
        assert config.case_sensitive_filters is True
        assert config.record_id_field == "EventRecordID"
        assert config.log_level_value == logging.WARNING

    def test_from_dict_partial(self):
        """Test that missing keys fall back to defaults."""
        config = ViewerConfig.from_dict({"page_size": 50, "log_level": "debug"})

        assert config.page_size == 50
        assert config.log_level == "DEBUG"
        assert config.flag_column == "Flagged"

    @pytest.mark.parametrize("page_size", [0, -1, "10", True])
    def test_invalid_page_size(self, page_size):
        """Test that page sizes other than positive integers are rejected."""
        with pytest.raises(ValueError):
            ViewerConfig(page_size=page_size)

    def test_invalid_log_level(self):
        """Test that unknown log levels are rejected."""
        with pytest.raises(ValueError):
            ViewerConfig(log_level="LOUD")

    def test_save_and_load(self, tmp_path):
        """Test writing and reading a config file."""
        path = tmp_path / "viewer.json"
        save_config(ViewerConfig(page_size=25, case_sensitive_filters=False), path)

        config = load_config(path)

        assert config.page_size == 25
        assert config.case_sensitive_filters is False

    def test_load_rejects_non_object(self, tmp_path):
        """Test that a config file must hold a JSON object."""
        path = tmp_path / "viewer.json"
        path.write_text(json.dumps([1, 2]), encoding="utf-8")

        with pytest.raises(ValueError):
            load_config(path)
