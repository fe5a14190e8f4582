from __future__ import annotations

import json

import pytest

from gps_locater.config import ThemeColor
from gps_locater.errors import StoreError
from gps_locater.preferences import Preferences
from gps_locater.theme import ThemeManager


@pytest.fixture
def preferences(tmp_path):
    return Preferences(tmp_path / "preferences.json")


def test_preferences_write_through(tmp_path, preferences):
    preferences.set("selectedTheme", "system")
    preferences.set("isDarkMode", False)

    reloaded = Preferences(tmp_path / "preferences.json")
    assert reloaded.get("selectedTheme") == "system"
    assert reloaded.get_bool("isDarkMode", True) is False
    assert reloaded.get("missing", "fallback") == "fallback"

    reloaded.remove("selectedTheme")
    assert Preferences(tmp_path / "preferences.json").get("selectedTheme") is None


def test_preferences_items_are_sorted(preferences):
    preferences.set("b", 2)
    preferences.set("a", 1)
    assert list(preferences.items()) == ["a", "b"]


def test_unreadable_preferences_raise(tmp_path):
    path = tmp_path / "preferences.json"
    path.write_text("{", encoding="utf-8")
    with pytest.raises(StoreError):
        Preferences(path)


def test_defaults(preferences):
    theme = ThemeManager(preferences)

    assert theme.current is ThemeColor.OCEAN_BLUE
    assert theme.current.accent_color == "#2D7196"
    assert theme.is_dark_mode
    assert not theme.is_system_theme


def test_first_launch_applies_default_theme_once(tmp_path, preferences):
    theme = ThemeManager(preferences)

    assert theme.configure_initial_theme()
    theme.set_theme(ThemeColor.SYSTEM)
    assert not theme.configure_initial_theme()

    stored = json.loads((tmp_path / "preferences.json").read_text(encoding="utf-8"))
    assert stored["hasLaunchedBefore"] is True
    assert stored["selectedTheme"] == "system"


def test_theme_and_dark_mode_persist(tmp_path, preferences):
    theme = ThemeManager(preferences)
    theme.set_theme(ThemeColor.SYSTEM)
    theme.set_dark_mode(False)

    restored = ThemeManager(Preferences(tmp_path / "preferences.json"))
    assert restored.is_system_theme
    assert restored.current.accent_color is None
    assert not restored.is_dark_mode


def test_unknown_stored_theme_falls_back(preferences):
    preferences.set("selectedTheme", "neonPink")
    assert ThemeManager(preferences).current is ThemeColor.OCEAN_BLUE
