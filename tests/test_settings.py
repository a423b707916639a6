"""Tests for settings persistence."""

from __future__ import annotations

import json
import logging

import pytest

from spineview.services.settings import (
    DEFAULT_SIZE, MAX_SIZE, MIN_SIZE, ApplicationSettings, SettingsManager, Theme
)


@pytest.fixture
def manager(tmp_path) -> SettingsManager:
    return SettingsManager(tmp_path / "spineview" / "settings.json")


def test_missing_file_gives_defaults(manager):
    settings = manager.load()
    assert settings == ApplicationSettings()
    assert settings.scroll.threshold_px == 2.0
    assert settings.layout.default_before == 40


def test_save_and_load(manager):
    settings = manager.settings
    settings.scroll.sync_enabled = False
    settings.connectors.width = 32.0
    settings.display.theme = Theme.DARK
    assert manager.save()

    data = json.loads(manager.settings_path.read_text(encoding='utf-8'))
    assert data['display']['theme'] == 'DARK'

    loaded = SettingsManager(manager.settings_path).settings
    assert loaded.scroll.sync_enabled is False
    assert loaded.connectors.width == 32.0
    assert loaded.display.theme is Theme.DARK


def test_corrupt_file_gives_defaults(manager, caplog):
    manager.settings_path.parent.mkdir(parents=True)
    manager.settings_path.write_text("{not json", encoding='utf-8')
    with caplog.at_level(logging.WARNING):
        assert manager.load() == ApplicationSettings()
    assert "Could not load settings" in caplog.text


def test_unknown_keys_are_ignored(manager):
    manager.settings_path.parent.mkdir(parents=True)
    manager.settings_path.write_text(json.dumps({
        'scroll': {'threshold_px': 4.0, 'removed_option': 1},
        'display': {'theme': 'NEON', 'size': 99},
    }), encoding='utf-8')

    settings = manager.load()
    assert settings.scroll.threshold_px == 4.0
    assert settings.display.theme is Theme.SYSTEM
    assert settings.display.size == MAX_SIZE


def test_layout_settings_from_older_files(manager):
    manager.settings_path.parent.mkdir(parents=True)
    manager.settings_path.write_text(json.dumps({
        'layout': {'focused': 70, 'transition_ms': 250},
    }), encoding='utf-8')

    layout = manager.load().layout
    assert layout.focused == 70
    assert not hasattr(layout, 'transition_ms')
    assert 'transition_ms' not in manager._to_dict(manager.load())['layout']


def test_size_steps_are_clamped(manager):
    manager.settings.display.size = MAX_SIZE
    assert manager.increase_size() == MAX_SIZE

    manager.settings.display.size = MIN_SIZE
    assert manager.decrease_size() == MIN_SIZE

    assert manager.reset_size() == DEFAULT_SIZE


def test_observers_are_notified(manager):
    seen = []
    manager.add_observer(seen.append)
    manager.increase_size()
    assert seen == [manager.settings]

    manager.remove_observer(seen.append)
    manager.increase_size()
    assert len(seen) == 1


def test_failing_observer_does_not_stop_others(manager):
    seen = []

    def broken(settings):
        raise RuntimeError("boom")

    manager.add_observer(broken)
    manager.add_observer(seen.append)
    manager.reset()
    assert len(seen) == 1


def test_recent_files(manager):
    manager.add_recent_file("a.json")
    manager.add_recent_file("b.json")
    manager.add_recent_file("a.json")
    assert manager.settings.recent_files == ["a.json", "b.json"]


@pytest.mark.parametrize("value, theme", [
    ("dark", Theme.DARK),
    ("LIGHT", Theme.LIGHT),
    ("plaid", Theme.SYSTEM),
])
def test_theme_from_string(value, theme):
    assert Theme.from_string(value) is theme
