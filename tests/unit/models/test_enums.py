"""
Tests for enums.
"""

from __future__ import annotations

import pytest

from imagecache.models.enums import CacheStateKind, ImageFormat, TimeUnit


class TestImageFormat:
    """Tests for ImageFormat.from_extension."""

    @pytest.mark.parametrize(
        ("extension", "expected"),
        [
            ("gif", ImageFormat.GIF),
            (".GIF", ImageFormat.GIF),
            ("png", ImageFormat.PNG),
            ("jpg", ImageFormat.JPEG),
            ("jpeg", ImageFormat.JPEG),
            ("webp", ImageFormat.JPEG),
            ("", ImageFormat.JPEG),
        ],
    )
    def test_from_extension(self, extension, expected):
        assert ImageFormat.from_extension(extension) is expected


class TestTimeUnit:
    """Tests for TimeUnit.seconds."""

    def test_seconds(self):
        assert TimeUnit.MINUTE.seconds == 60
        assert TimeUnit.HOUR.seconds == 3600
        assert TimeUnit.DAY.seconds == 86400
        assert TimeUnit.WEEK.seconds == 604800

    def test_from_value(self):
        assert TimeUnit("d") is TimeUnit.DAY


def test_cache_state_kind_values():
    assert [kind.value for kind in CacheStateKind] == ["unseen", "succeeded", "failed"]
