"""Theme selection persisted in preferences."""

import logging

from .config import ThemeColor
from .preferences import Preferences

logger = logging.getLogger(__name__)

THEME_KEY = "selectedTheme"
DARK_MODE_KEY = "isDarkMode"
FIRST_LAUNCH_KEY = "hasLaunchedBefore"


class ThemeManager:
    default_theme = ThemeColor.OCEAN_BLUE

    def __init__(self, preferences: Preferences):
        self.preferences = preferences
        saved = preferences.get(THEME_KEY, "")
        try:
            self.current = ThemeColor(saved)
        except ValueError:
            self.current = self.default_theme

    @property
    def is_system_theme(self) -> bool:
        return self.current is ThemeColor.SYSTEM

    @property
    def is_dark_mode(self) -> bool:
        return self.preferences.get_bool(DARK_MODE_KEY, True)

    def set_dark_mode(self, enabled: bool) -> None:
        self.preferences.set(DARK_MODE_KEY, enabled)

    def set_theme(self, theme: ThemeColor) -> None:
        self.current = theme
        self.preferences.set(THEME_KEY, theme.value)

    def configure_initial_theme(self) -> bool:
        """Apply the default theme on first launch. Returns True on first launch."""
        if self.preferences.get_bool(FIRST_LAUNCH_KEY):
            return False
        logger.info("First launch setup")
        self.preferences.set(FIRST_LAUNCH_KEY, True)
        self.set_theme(self.default_theme)
        return True
