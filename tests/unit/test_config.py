"""Tests for codec configuration."""

from __future__ import annotations

import pytest

from protoedit import CodecConfig


class TestCodecConfig:
    """Test CodecConfig defaults and validation."""

    def test_defaults(self) -> None:
        """Test default values."""
        config = CodecConfig()

        assert config.indent == 2
        assert config.max_depth == 64
        assert config.hex_bytes_per_line == 16
        assert config.cache_size == 1000
        assert config.search_paths == []

    def test_search_paths_not_shared(self) -> None:
        """Test each config gets its own search path list."""
        first = CodecConfig()
        first.search_paths.append("/a")
        assert CodecConfig().search_paths == []

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"indent": -1},
            {"max_depth": 0},
            {"hex_bytes_per_line": 0},
            {"cache_size": 0},
        ],
    )
    def test_invalid(self, kwargs: dict) -> None:
        """Test invalid values are rejected."""
        with pytest.raises(ValueError):
            CodecConfig(**kwargs)
