"""Tests for color parsing."""

from redline.utils.colors import hex_to_rgb, hex_to_rgba, parse_hex


class TestParseHex:
    def test_with_and_without_hash(self):
        assert parse_hex("#FF8000") == (255, 128, 0)
        assert parse_hex("ff8000") == (255, 128, 0)

    def test_invalid(self):
        assert parse_hex("red") is None
        assert parse_hex("#12345") is None
        assert parse_hex("") is None


class TestConversions:
    def test_hex_to_rgb_fractions(self):
        assert hex_to_rgb("#FFFFFF") == (1.0, 1.0, 1.0)
        assert hex_to_rgb("#000000") == (0.0, 0.0, 0.0)

    def test_malformed_falls_back_to_black(self):
        assert hex_to_rgb("not-a-color") == (0.0, 0.0, 0.0)

    def test_hex_to_rgba(self):
        assert hex_to_rgba("#0000FF", 128) == (0, 0, 255, 128)
        assert hex_to_rgba("bogus") == (0, 0, 0, 255)
