"""Tests for the environment configuration accessors."""

import pytest

from roomcast.shared.config import EnvironConfig, config


@pytest.fixture
def values(monkeypatch: pytest.MonkeyPatch):
    def put(key: str, value: str) -> None:
        monkeypatch.setitem(config._config, key, value)

    return put


class TestEnvironConfig:
    def test_singleton(self):
        """Every construction returns the shared instance."""
        assert EnvironConfig() is config

    def test_get_str_strips_and_defaults(self, values):
        """Blank values fall back to the default; others are stripped."""
        values("ROOMCAST_TEST_STR", "  media  ")
        values("ROOMCAST_TEST_BLANK", "   ")

        assert config.get_str("ROOMCAST_TEST_STR") == "media"
        assert config.get_str("ROOMCAST_TEST_BLANK", "fallback") == "fallback"
        assert config.get_str("ROOMCAST_TEST_ABSENT", "fallback") == "fallback"

    def test_get_int(self, values):
        """Integers parse; invalid values use the default."""
        values("ROOMCAST_TEST_INT", " 42 ")
        values("ROOMCAST_TEST_BAD_INT", "forty")

        assert config.get_int("ROOMCAST_TEST_INT", 1) == 42
        assert config.get_int("ROOMCAST_TEST_BAD_INT", 7) == 7

    @pytest.mark.parametrize("raw, expected", [("true", True), ("ON", True), ("1", True), ("no", False)])
    def test_get_bool(self, values, raw: str, expected: bool):
        """Truthy spellings are recognised case-insensitively."""
        values("ROOMCAST_TEST_BOOL", raw)
        assert config.get_bool("ROOMCAST_TEST_BOOL") is expected

    def test_public_surface(self):
        """Only the accessors used by the application are exposed."""
        public = {name for name in vars(EnvironConfig) if not name.startswith("_")}
        assert public == {"get", "get_str", "get_int", "get_bool"}
