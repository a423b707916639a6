"""
Persistent viewer settings.

Settings are plain dataclasses grouped by concern and stored as one JSON
file per user. Unknown or malformed entries fall back to their defaults so
that files written by other versions still load.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional


logger = logging.getLogger(__name__)


class Theme(Enum):
    """Color theme of the application."""
    SYSTEM = "system"
    LIGHT = "light"
    DARK = "dark"

    @classmethod
    def from_string(cls, value: str) -> 'Theme':
        """Accept a value ('dark') or a member name ('DARK'); SYSTEM otherwise."""
        wanted = str(value).strip().lower()
        for theme in cls:
            if wanted in (theme.value, theme.name.lower()):
                return theme
        return cls.SYSTEM


# Display size limits (px)
SIZE_STEP = 1
MIN_SIZE = 10
MAX_SIZE = 24
DEFAULT_SIZE = 13


@dataclass
class ScrollSettings:
    """Synchronized scrolling and redraw pacing."""
    sync_enabled: bool = True
    anchor_fraction: float = 0.0      # Where in the viewport lines are matched
    threshold_px: float = 2.0         # Smaller corrections are not written
    echo_tolerance_px: float = 1.0
    keyboard_step_lines: int = 3
    redraw_interval_ms: int = 16


@dataclass
class ConnectorSettings:
    """Look of the connector strip between the panes."""
    width: float = 24.0
    control_fraction: float = 0.5
    fill_color: str = "#fff3c4"
    hover_color: str = "#ffe08a"
    stroke_color: str = "#d9b44a"
    comment_color: str = "#4a8fd9"


@dataclass
class LayoutSettings:
    """Flex shares of the two panes."""
    default_before: int = 40
    default_after: int = 60
    focused: int = 60
    zoomed: int = 90
    collapsed: int = 10


@dataclass
class DisplaySettings:
    """Code font, change colors and window geometry."""
    theme: Theme = Theme.LIGHT
    font_family: str = "Consolas"
    size: int = DEFAULT_SIZE
    added_background: str = "#e6ffec"
    removed_background: str = "#ffebe9"
    separator_color: str = "#c8c8c8"
    window_width: int = 1200
    window_height: int = 800


@dataclass
class ApplicationSettings:
    """All settings sections plus the recently opened diff files."""
    scroll: ScrollSettings = field(default_factory=ScrollSettings)
    connectors: ConnectorSettings = field(default_factory=ConnectorSettings)
    layout: LayoutSettings = field(default_factory=LayoutSettings)
    display: DisplaySettings = field(default_factory=DisplaySettings)

    recent_files: list[str] = field(default_factory=list)


# Section name -> dataclass, in file order
SECTIONS = {
    'scroll': ScrollSettings,
    'connectors': ConnectorSettings,
    'layout': LayoutSettings,
    'display': DisplaySettings,
}


def _encode(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.name
    if hasattr(value, '__dataclass_fields__'):
        return {f.name: _encode(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, list):
        return [_encode(item) for item in value]
    return value


def _decode_section(cls: type, values: Any) -> Any:
    """Build a section from stored values, keeping defaults for the rest."""
    section = cls()
    if not isinstance(values, dict):
        return section

    for f in fields(section):
        if f.name not in values:
            continue
        value = values[f.name]
        if isinstance(getattr(section, f.name), Enum):
            value = Theme.from_string(value)
        setattr(section, f.name, value)
    return section


class SettingsManager:
    """
    Loads, saves and publishes the settings file.

    Observers are called with the new settings after every successful save.
    """

    def __init__(self, settings_path: Optional[Path] = None):
        self.settings_path = settings_path or self.default_path()
        self._settings: Optional[ApplicationSettings] = None
        self._observers: list[Callable[[ApplicationSettings], None]] = []

    @staticmethod
    def default_path() -> Path:
        """Per-user settings file (APPDATA on Windows, XDG config elsewhere)."""
        if os.name == 'nt':
            base = os.environ.get('APPDATA') or os.path.expanduser('~')
            return Path(base) / 'SpineView' / 'settings.json'

        base = os.environ.get('XDG_CONFIG_HOME') or os.path.expanduser('~/.config')
        return Path(base) / 'spineview' / 'settings.json'

    @property
    def settings(self) -> ApplicationSettings:
        """Current settings; read from disk on first access."""
        if self._settings is None:
            self._settings = self.load()
        return self._settings

    def load(self) -> ApplicationSettings:
        """Read the settings file; defaults if it is missing or unreadable."""
        if not self.settings_path.exists():
            return ApplicationSettings()

        try:
            with open(self.settings_path, 'r', encoding='utf-8') as f:
                return self._from_dict(json.load(f))
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning("Could not load settings from %s: %s", self.settings_path, e)
            return ApplicationSettings()

    def save(self, settings: Optional[ApplicationSettings] = None) -> bool:
        """
        Write settings to disk and notify observers.

        Returns:
            False if there was nothing to save or the write failed
        """
        settings = settings or self._settings
        if settings is None:
            return False

        try:
            self.settings_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.settings_path, 'w', encoding='utf-8') as f:
                json.dump(self._to_dict(settings), f, indent=2)
        except OSError as e:
            logger.error("Could not save settings to %s: %s", self.settings_path, e)
            return False

        self._settings = settings
        self._notify_observers()
        return True

    def reset(self) -> ApplicationSettings:
        """Replace everything with defaults and save."""
        self._settings = ApplicationSettings()
        self.save()
        return self._settings

    # === Observers ===

    def add_observer(self, callback: Callable[[ApplicationSettings], None]) -> None:
        self._observers.append(callback)

    def remove_observer(self, callback: Callable[[ApplicationSettings], None]) -> None:
        if callback in self._observers:
            self._observers.remove(callback)

    def _notify_observers(self) -> None:
        for callback in list(self._observers):
            try:
                callback(self._settings)
            except Exception:
                logger.exception("Settings observer failed")

    # === Display size ===

    def _set_size(self, size: int) -> int:
        display = self.settings.display
        display.size = max(MIN_SIZE, min(MAX_SIZE, size))
        self.save()
        return display.size

    def increase_size(self) -> int:
        """Grow the display size by one step, up to the maximum."""
        return self._set_size(self.settings.display.size + SIZE_STEP)

    def decrease_size(self) -> int:
        """Shrink the display size by one step, down to the minimum."""
        return self._set_size(self.settings.display.size - SIZE_STEP)

    def reset_size(self) -> int:
        return self._set_size(DEFAULT_SIZE)

    def add_recent_file(self, path: str, limit: int = 10) -> None:
        """Move a diff file to the front of the recent list."""
        recent = [p for p in self.settings.recent_files if p != path]
        self.settings.recent_files = [path] + recent[:limit - 1]
        self.save()

    # === Serialization ===

    @staticmethod
    def _to_dict(settings: ApplicationSettings) -> dict:
        return _encode(settings)

    @staticmethod
    def _from_dict(data: dict) -> ApplicationSettings:
        settings = ApplicationSettings(
            **{name: _decode_section(cls, data.get(name)) for name, cls in SECTIONS.items()}
        )
        settings.display.size = max(MIN_SIZE, min(MAX_SIZE, int(settings.display.size)))

        recent = data.get('recent_files', [])
        settings.recent_files = [str(p) for p in recent] if isinstance(recent, list) else []
        return settings
