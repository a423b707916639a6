"""
Keyboard input routing for the diff viewer.

A single router receives every key event of the viewer window (fed by an
event filter in the UI layer) and:
- Tracks the space key as a held modifier for pane zoom
- Dispatches registered shortcuts, skipping text entries unless allowed

Key names follow the DOM convention ('j', '[', 'ArrowDown', 'Space') so
shortcut tables stay readable and independent of Qt key codes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional


logger = logging.getLogger(__name__)

SPACE = 'Space'

# Keys that need shift to be typed on most layouts
SHIFT_TYPED_KEYS = frozenset('+=!@#$%^&*()_')


@dataclass(frozen=True)
class Modifiers:
    """Modifier keys required by a shortcut."""
    ctrl: bool = False
    meta: bool = False
    shift: bool = False
    alt: bool = False


@dataclass(frozen=True)
class KeyInput:
    """A key event as seen by the router."""
    key: str
    ctrl: bool = False
    meta: bool = False
    shift: bool = False
    alt: bool = False
    is_repeat: bool = False
    in_text_entry: bool = False

    def matches_key(self, key: str) -> bool:
        return key == self.key or key.lower() == self.key.lower()

    def modifiers_match(self, wanted: Modifiers) -> bool:
        """Exact modifier match, lenient on shift for shift-typed keys."""
        if wanted.ctrl != self.ctrl or wanted.meta != self.meta or wanted.alt != self.alt:
            return False
        if wanted.shift and not self.shift:
            return False
        if not wanted.shift and self.shift and self.key not in SHIFT_TYPED_KEYS:
            return False
        return True


@dataclass
class Shortcut:
    """A registered keyboard shortcut."""
    id: str
    keys: tuple[str, ...]
    handler: Callable[[], None]
    modifiers: Modifiers = field(default_factory=Modifiers)
    description: str = ""
    category: str = "navigation"
    allow_in_inputs: bool = False


class InputRouter:
    """
    Central key dispatcher with space-modifier tracking.

    Usage:
        router = InputRouter(blur_focus=lambda: window.setFocus())
        router.add_space_observer(session.set_space_held)
        unregister = router.register(Shortcut('next', ('j',), session.next_hunk))
    """

    def __init__(self, blur_focus: Optional[Callable[[], None]] = None):
        self._shortcuts: dict[str, Shortcut] = {}
        self._space_held = False
        self._blur_focus = blur_focus
        self._space_observers: list[Callable[[bool], None]] = []

    @property
    def space_held(self) -> bool:
        return self._space_held

    @property
    def shortcuts(self) -> list[Shortcut]:
        """Registered shortcuts, in registration order."""
        return list(self._shortcuts.values())

    def set_blur_focus(self, callback: Optional[Callable[[], None]]) -> None:
        self._blur_focus = callback

    # === Observers ===

    def add_space_observer(self, callback: Callable[[bool], None]) -> None:
        self._space_observers.append(callback)

    def remove_space_observer(self, callback: Callable[[bool], None]) -> None:
        if callback in self._space_observers:
            self._space_observers.remove(callback)

    def _set_space_held(self, held: bool) -> None:
        if held == self._space_held:
            return
        self._space_held = held
        for callback in list(self._space_observers):
            callback(held)

    # === Registration ===

    def register(self, shortcut: Shortcut) -> Callable[[], None]:
        """
        Register a shortcut, replacing any with the same id.

        Returns:
            Function that unregisters it again
        """
        self._shortcuts[shortcut.id] = shortcut

        def unregister() -> None:
            if self._shortcuts.get(shortcut.id) is shortcut:
                del self._shortcuts[shortcut.id]

        return unregister

    # === Events ===

    def key_pressed(self, event: KeyInput) -> bool:
        """
        Handle a key press.

        Returns:
            True if the event was consumed
        """
        if event.key == SPACE:
            if event.in_text_entry:
                return False
            if not event.is_repeat:
                # Keep space from scrolling or activating the focused widget
                if self._blur_focus is not None:
                    self._blur_focus()
                self._set_space_held(True)
            return True

        for shortcut in list(self._shortcuts.values()):
            if event.in_text_entry and not shortcut.allow_in_inputs:
                continue
            if not any(event.matches_key(k) for k in shortcut.keys):
                continue
            if not event.modifiers_match(shortcut.modifiers):
                continue

            logger.debug("Shortcut matched: %s (key %r)", shortcut.id, event.key)
            shortcut.handler()
            return True
        return False

    def key_released(self, event: KeyInput) -> bool:
        """Handle a key release; releasing space always clears the modifier."""
        if event.key != SPACE:
            return False
        self._set_space_held(False)
        return True

    def focus_lost(self) -> None:
        """Window lost focus; a release may never arrive."""
        self._set_space_held(False)


@dataclass
class NavigationActions:
    """Callbacks bound by `register_navigation_shortcuts`."""
    next_hunk: Callable[[], None]
    previous_hunk: Callable[[], None]
    comment_on_hunk: Optional[Callable[[], None]] = None
    scroll_lines: Optional[Callable[[int], None]] = None
    scroll_step: int = 3
    change_size: Optional[Callable[[int], None]] = None   # +1, -1, or 0 to reset


def register_navigation_shortcuts(
    router: InputRouter,
    actions: NavigationActions
) -> Callable[[], None]:
    """
    Register the diff navigation shortcuts.

    Returns:
        Single function unregistering all of them
    """
    shortcuts = [
        Shortcut('next-hunk', ('j', ']'), actions.next_hunk,
                 description="Next change"),
        Shortcut('previous-hunk', ('k', '['), actions.previous_hunk,
                 description="Previous change"),
    ]

    if actions.comment_on_hunk is not None:
        shortcuts.append(Shortcut(
            'comment-on-hunk', ('c',), actions.comment_on_hunk,
            description="Comment on current change", category="comments",
        ))

    if actions.scroll_lines is not None:
        step = actions.scroll_step
        scroll = actions.scroll_lines
        ctrl = Modifiers(ctrl=True)
        shortcuts += [
            Shortcut('scroll-down', ('ArrowDown',), lambda: scroll(step),
                     description="Scroll down"),
            Shortcut('scroll-up', ('ArrowUp',), lambda: scroll(-step),
                     description="Scroll up"),
            Shortcut('scroll-down-emacs', ('n',), lambda: scroll(step), modifiers=ctrl,
                     description="Scroll down", allow_in_inputs=True),
            Shortcut('scroll-up-emacs', ('p',), lambda: scroll(-step), modifiers=ctrl,
                     description="Scroll up", allow_in_inputs=True),
        ]

    if actions.change_size is not None:
        change = actions.change_size
        ctrl = Modifiers(ctrl=True)
        shortcuts += [
            Shortcut('size-increase', ('=', '+'), lambda: change(1), modifiers=ctrl,
                     description="Larger text", category="display"),
            Shortcut('size-decrease', ('-',), lambda: change(-1), modifiers=ctrl,
                     description="Smaller text", category="display"),
            Shortcut('size-reset', ('0',), lambda: change(0), modifiers=ctrl,
                     description="Default text size", category="display"),
        ]

    unregisters = [router.register(s) for s in shortcuts]

    def unregister_all() -> None:
        for unregister in unregisters:
            unregister()

    return unregister_all
