"""Tests for keyboard routing and the space modifier."""

from __future__ import annotations

import pytest

from spineview.services.input_router import (
    SPACE, InputRouter, KeyInput, Modifiers, NavigationActions, Shortcut,
    register_navigation_shortcuts
)


class Recorder:
    def __init__(self):
        self.calls: list = []

    def action(self, name):
        return lambda *args: self.calls.append((name,) + args)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def router(recorder) -> InputRouter:
    router = InputRouter(blur_focus=recorder.action('blur'))
    register_navigation_shortcuts(router, NavigationActions(
        next_hunk=recorder.action('next'),
        previous_hunk=recorder.action('previous'),
        comment_on_hunk=recorder.action('comment'),
        scroll_lines=recorder.action('scroll'),
        scroll_step=3,
        change_size=recorder.action('size'),
    ))
    return router


class TestShortcuts:
    @pytest.mark.parametrize("key, expected", [
        ('j', ('next',)),
        (']', ('next',)),
        ('k', ('previous',)),
        ('[', ('previous',)),
        ('c', ('comment',)),
        ('ArrowDown', ('scroll', 3)),
        ('ArrowUp', ('scroll', -3)),
    ])
    def test_navigation_keys(self, router, recorder, key, expected):
        assert router.key_pressed(KeyInput(key))
        assert recorder.calls == [expected]

    @pytest.mark.parametrize("key_input, expected", [
        (KeyInput('=', ctrl=True), ('size', 1)),
        (KeyInput('+', ctrl=True, shift=True), ('size', 1)),
        (KeyInput('-', ctrl=True), ('size', -1)),
        (KeyInput('0', ctrl=True), ('size', 0)),
    ])
    def test_size_keys(self, router, recorder, key_input, expected):
        assert router.key_pressed(key_input)
        assert recorder.calls == [expected]

    def test_size_keys_need_ctrl(self, router, recorder):
        assert not router.key_pressed(KeyInput('-'))
        assert not router.key_pressed(KeyInput('0'))
        assert recorder.calls == []

    def test_text_entry_blocks_plain_keys(self, router, recorder):
        assert not router.key_pressed(KeyInput('j', in_text_entry=True))
        assert not router.key_pressed(KeyInput('ArrowDown', in_text_entry=True))
        assert recorder.calls == []

    def test_emacs_scroll_works_in_text_entry(self, router, recorder):
        assert router.key_pressed(KeyInput('n', ctrl=True, in_text_entry=True))
        assert router.key_pressed(KeyInput('p', ctrl=True))
        assert recorder.calls == [('scroll', 3), ('scroll', -3)]

    def test_modifiers_must_match(self, router, recorder):
        assert not router.key_pressed(KeyInput('j', ctrl=True))
        assert not router.key_pressed(KeyInput('j', shift=True))
        assert not router.key_pressed(KeyInput('n'))
        assert recorder.calls == []

    def test_shift_typed_keys_are_lenient(self, recorder):
        router = InputRouter()
        router.register(Shortcut('zoom-in', ('+',), recorder.action('zoom')))
        assert router.key_pressed(KeyInput('+', shift=True))
        assert recorder.calls == [('zoom',)]

    def test_required_shift(self, recorder):
        router = InputRouter()
        router.register(Shortcut('help', ('?',), recorder.action('help'), Modifiers(shift=True)))
        assert not router.key_pressed(KeyInput('?'))
        assert router.key_pressed(KeyInput('?', shift=True))

    def test_unregister(self, recorder):
        router = InputRouter()
        unregister = router.register(Shortcut('next', ('j',), recorder.action('next')))
        unregister()
        assert not router.key_pressed(KeyInput('j'))
        assert router.shortcuts == []

    def test_unregister_all_navigation(self, recorder):
        router = InputRouter()
        unregister_all = register_navigation_shortcuts(
            router, NavigationActions(recorder.action('next'), recorder.action('previous'))
        )
        assert len(router.shortcuts) == 2
        unregister_all()
        assert router.shortcuts == []


class TestSpace:
    def test_press_and_release(self, router, recorder):
        held = []
        router.add_space_observer(held.append)

        assert router.key_pressed(KeyInput(SPACE))
        assert router.space_held
        assert ('blur',) in recorder.calls

        assert router.key_released(KeyInput(SPACE))
        assert not router.space_held
        assert held == [True, False]

    def test_repeat_is_consumed_quietly(self, router, recorder):
        held = []
        router.add_space_observer(held.append)
        router.key_pressed(KeyInput(SPACE))
        assert router.key_pressed(KeyInput(SPACE, is_repeat=True))
        assert held == [True]
        assert recorder.calls.count(('blur',)) == 1

    def test_typing_space_in_text_entry(self, router):
        assert not router.key_pressed(KeyInput(SPACE, in_text_entry=True))
        assert not router.space_held

    def test_focus_loss_releases_space(self, router):
        router.key_pressed(KeyInput(SPACE))
        router.focus_lost()
        assert not router.space_held

    def test_other_releases_are_ignored(self, router):
        router.key_pressed(KeyInput(SPACE))
        assert not router.key_released(KeyInput('j'))
        assert router.space_held
