"""
Services around the core engine.

Provides:
- Settings persistence
- Redraw coalescing
- Keyboard input routing
- Syntax token caching
"""

from spineview.services.settings import (
    ApplicationSettings,
    SettingsManager,
)
from spineview.services.redraw import FrameScheduler
from spineview.services.input_router import (
    InputRouter,
    KeyInput,
    Modifiers,
    Shortcut,
    NavigationActions,
    register_navigation_shortcuts,
)
from spineview.services.tokens import (
    Token,
    TokenCache,
    RegexTokenizer,
    plain_tokens,
)

__all__ = [
    # Settings
    'ApplicationSettings',
    'SettingsManager',
    # Redraw
    'FrameScheduler',
    # Input
    'InputRouter',
    'KeyInput',
    'Modifiers',
    'Shortcut',
    'NavigationActions',
    'register_navigation_shortcuts',
    # Tokens
    'Token',
    'TokenCache',
    'RegexTokenizer',
    'plain_tokens',
]
