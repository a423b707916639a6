"""
Syntax token handling for the two panes.

Tokenization itself is an external service; this module defines its
interface and the fallback behaviour around it:
- Plain (uncolored) tokens are always available immediately
- Highlighted tokens replace them once the service delivers
- Tokenizer failures are logged and the plain tokens stay
- Results for a diff that is no longer shown are discarded

`RegexTokenizer` is a small built-in service based on per-line patterns.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Optional, Pattern, Protocol

from spineview.core.diff_utils import file_path, language_for_path, language_from_diff, text_lines
from spineview.core.models import FileDiff, Side


logger = logging.getLogger(__name__)

TokenLines = list[list['Token']]


@dataclass(frozen=True)
class Token:
    """A run of text with an optional foreground color."""
    text: str
    color: Optional[str] = None


def plain_tokens(lines: tuple[str, ...] | list[str]) -> TokenLines:
    """One uncolored token per line (empty lines get no tokens)."""
    return [[Token(line)] if line else [] for line in lines]


class TokenizationService(Protocol):
    """Interface of the syntax tokenizer."""

    def highlight(self, code: str, language: Optional[str]) -> TokenLines: ...

    def detect_language(self, path: str) -> Optional[str]: ...


# =============================================================================
# Built-in regex tokenizer
# =============================================================================

@dataclass
class TokenRule:
    """A highlighting rule with pattern and color."""
    pattern: str
    color: str
    group: int = 0  # Capture group to color

    _compiled: Optional[Pattern] = field(default=None, repr=False)

    def compile(self) -> Pattern:
        """Compile the pattern."""
        if self._compiled is None:
            self._compiled = re.compile(self.pattern)
        return self._compiled


COMMENT = "#6a737d"
STRING = "#032f62"
NUMBER = "#005cc5"
KEYWORD = "#d73a49"
FUNCTION = "#6f42c1"

PYTHON_RULES = [
    # Comments and strings first so keywords inside them stay uncolored
    TokenRule(r'#.*$', COMMENT),
    TokenRule(r'[fFrRbBuU]?"[^"\\]*(\\.[^"\\]*)*"', STRING),
    TokenRule(r"[fFrRbBuU]?'[^'\\]*(\\.[^'\\]*)*'", STRING),
    TokenRule(r'\b\d+\.?\d*([eE][+-]?\d+)?\b', NUMBER),
    TokenRule(
        r'\b(and|as|assert|async|await|break|class|continue|def|del|elif|else|'
        r'except|finally|for|from|global|if|import|in|is|lambda|nonlocal|not|'
        r'or|pass|raise|return|try|while|with|yield|True|False|None)\b',
        KEYWORD
    ),
    TokenRule(r'\b(?:def|class)\s+(\w+)', FUNCTION, group=1),
]

JAVASCRIPT_RULES = [
    TokenRule(r'//.*$', COMMENT),
    TokenRule(r'"[^"\\]*(\\.[^"\\]*)*"', STRING),
    TokenRule(r"'[^'\\]*(\\.[^'\\]*)*'", STRING),
    TokenRule(r'`[^`]*`', STRING),
    TokenRule(r'\b\d+\.?\d*\b', NUMBER),
    TokenRule(
        r'\b(async|await|break|case|catch|class|const|continue|default|delete|'
        r'do|else|export|extends|finally|for|function|if|import|in|instanceof|'
        r'interface|let|new|of|return|switch|this|throw|try|type|typeof|var|'
        r'void|while|yield|true|false|null|undefined)\b',
        KEYWORD
    ),
    TokenRule(r'\bfunction\s+(\w+)', FUNCTION, group=1),
]

JSON_RULES = [
    TokenRule(r'"[^"\\]*(\\.[^"\\]*)*"', STRING),
    TokenRule(r'-?\b\d+\.?\d*([eE][+-]?\d+)?\b', NUMBER),
    TokenRule(r'\b(true|false|null)\b', KEYWORD),
]

LANGUAGE_RULES = {
    'python': PYTHON_RULES,
    'javascript': JAVASCRIPT_RULES,
    'jsx': JAVASCRIPT_RULES,
    'typescript': JAVASCRIPT_RULES,
    'tsx': JAVASCRIPT_RULES,
    'json': JSON_RULES,
}


class RegexTokenizer:
    """Line-based tokenizer for a handful of common languages."""

    def detect_language(self, path: str) -> Optional[str]:
        return language_for_path(PurePosixPath(path).name)

    def highlight(self, code: str, language: Optional[str]) -> TokenLines:
        lines = code.split('\n')
        rules = LANGUAGE_RULES.get(language or '')
        if rules is None:
            return plain_tokens(lines)
        return [self._tokenize_line(line, rules) for line in lines]

    @staticmethod
    def _tokenize_line(line: str, rules: list[TokenRule]) -> list[Token]:
        if not line:
            return []

        # Earlier rules win where matches overlap
        colors: list[Optional[str]] = [None] * len(line)
        claimed = [False] * len(line)
        for rule in rules:
            for match in rule.compile().finditer(line):
                start, end = match.span(rule.group)
                if start < 0 or start == end or any(claimed[start:end]):
                    continue
                for i in range(start, end):
                    colors[i] = rule.color
                    claimed[i] = True

        tokens = []
        run_start = 0
        for i in range(1, len(line) + 1):
            if i == len(line) or colors[i] != colors[run_start]:
                tokens.append(Token(line[run_start:i], colors[run_start]))
                run_start = i
        return tokens


# =============================================================================
# Token cache
# =============================================================================

class TokenCache:
    """
    Tokens of both sides of the current diff.

    Every `reset` starts a new generation; deliveries tagged with an older
    generation belong to a diff that is no longer shown and are dropped.
    """

    def __init__(self, service: Optional[TokenizationService] = None):
        self.service = service
        self._generation = 0
        self._language: Optional[str] = None
        self._code: dict[Side, str] = {}
        self._tokens: dict[Side, TokenLines] = {side: [] for side in Side}
        self._highlighted: dict[Side, bool] = {side: False for side in Side}

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def language(self) -> Optional[str]:
        return self._language

    def reset(self, diff: Optional[FileDiff]) -> int:
        """
        Start serving plain tokens for a new diff.

        Returns:
            The new generation
        """
        self._generation += 1
        self._language = language_from_diff(diff)
        if self._language is None and self.service is not None and diff is not None:
            self._language = self.service.detect_language(file_path(diff))

        for side in Side:
            lines = text_lines(diff, side)
            self._code[side] = '\n'.join(lines)
            self._tokens[side] = plain_tokens(lines)
            self._highlighted[side] = False
        return self._generation

    def code(self, side: Side) -> str:
        return self._code.get(side, "")

    def tokens(self, side: Side) -> TokenLines:
        return self._tokens[side]

    def is_highlighted(self, side: Side) -> bool:
        return self._highlighted[side]

    def deliver(self, generation: int, side: Side, tokens: TokenLines) -> bool:
        """
        Accept highlighted tokens for one side.

        Returns:
            False if the result was for an older diff
        """
        if generation != self._generation:
            logger.debug("Dropping tokens for stale generation %d", generation)
            return False
        self._tokens[side] = tokens
        self._highlighted[side] = True
        return True

    def fail(self, generation: int, side: Side, message: str) -> None:
        """Record a tokenizer failure; plain tokens stay in place."""
        if generation == self._generation:
            logger.warning("Tokenizing %s side failed: %s", side.value, message)

    def highlight_now(self, side: Side) -> bool:
        """
        Tokenize one side synchronously with the service.

        Returns:
            True if highlighted tokens are now in place
        """
        if self.service is None or not self._code.get(side):
            return False

        generation = self._generation
        try:
            tokens = self.service.highlight(self._code[side], self._language)
        except Exception as e:
            self.fail(generation, side, f"{type(e).__name__}: {e}")
            return False
        return self.deliver(generation, side, tokens)
