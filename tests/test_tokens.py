"""Tests for the tokenizer and the token cache."""

from __future__ import annotations

import logging

from spineview.core.models import Side
from spineview.services.tokens import (
    COMMENT, FUNCTION, KEYWORD, NUMBER, STRING, RegexTokenizer, Token, TokenCache, plain_tokens
)

from conftest import make_diff


class FailingTokenizer:
    def detect_language(self, path):
        return None

    def highlight(self, code, language):
        raise RuntimeError("grammar missing")


class GuessingTokenizer(RegexTokenizer):
    def detect_language(self, path):
        return 'python'


class TestRegexTokenizer:
    def test_comment_and_number(self):
        tokens = RegexTokenizer().highlight("x = 1  # note", 'python')[0]
        assert tokens == [
            Token("x = "), Token("1", NUMBER), Token("  "), Token("# note", COMMENT)
        ]

    def test_definition_name(self):
        tokens = RegexTokenizer().highlight("def foo():", 'python')[0]
        assert tokens == [Token("def", KEYWORD), Token(" "), Token("foo", FUNCTION), Token("():")]

    def test_keywords_inside_strings_stay_strings(self):
        tokens = RegexTokenizer().highlight('print("if")', 'python')[0]
        assert tokens == [Token("print("), Token('"if"', STRING), Token(")")]

    def test_text_round_trips(self):
        code = "const a = 'b'; // c\n\nlet d = 4"
        lines = RegexTokenizer().highlight(code, 'javascript')
        assert [''.join(t.text for t in line) for line in lines] == code.split('\n')

    def test_unknown_language_is_plain(self):
        assert RegexTokenizer().highlight("a\nb", 'cobol') == [[Token("a")], [Token("b")]]

    def test_detect_language(self):
        assert RegexTokenizer().detect_language("x/y/z.json") == 'json'


class TestTokenCache:
    def test_reset_serves_plain_tokens(self):
        cache = TokenCache(RegexTokenizer())
        generation = cache.reset(make_diff())
        assert generation == 1
        assert cache.language == 'python'
        assert cache.tokens(Side.BEFORE) == plain_tokens(make_diff().before.lines)
        assert not cache.is_highlighted(Side.BEFORE)

    def test_highlight_now(self):
        cache = TokenCache(RegexTokenizer())
        cache.reset(make_diff())
        assert cache.highlight_now(Side.AFTER)
        assert cache.is_highlighted(Side.AFTER)
        assert cache.tokens(Side.AFTER)[0] == [Token("y = "), Token("0", NUMBER)]

    def test_stale_delivery_is_dropped(self):
        cache = TokenCache(RegexTokenizer())
        old = cache.reset(make_diff())
        cache.reset(make_diff(after_path="other.py"))
        assert not cache.deliver(old, Side.AFTER, [[Token("stale")]])
        assert not cache.is_highlighted(Side.AFTER)

    def test_failure_keeps_plain_tokens(self, caplog):
        cache = TokenCache(FailingTokenizer())
        cache.reset(make_diff())
        with caplog.at_level(logging.WARNING):
            assert not cache.highlight_now(Side.BEFORE)
        assert "grammar missing" in caplog.text
        assert cache.tokens(Side.BEFORE)[0] == [Token("x = 0")]

    def test_service_detects_unknown_extensions(self):
        cache = TokenCache(GuessingTokenizer())
        cache.reset(make_diff(before_path="build/SConstruct", after_path="build/SConstruct"))
        assert cache.language == 'python'

    def test_missing_side(self):
        cache = TokenCache(RegexTokenizer())
        cache.reset(make_diff(before_path=None, alignments=()))
        assert cache.tokens(Side.BEFORE) == []
        assert not cache.highlight_now(Side.BEFORE)

    def test_without_service(self):
        cache = TokenCache()
        cache.reset(make_diff())
        assert not cache.highlight_now(Side.AFTER)
