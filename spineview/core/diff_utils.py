"""
Small helpers for describing a file diff (titles, language, binary checks).
"""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Optional

from spineview.core.models import FileDiff, Side


# File extension to language id, as understood by the tokenization service
EXTENSION_LANGUAGES = {
    '.py': 'python',
    '.pyw': 'python',
    '.js': 'javascript',
    '.mjs': 'javascript',
    '.jsx': 'jsx',
    '.ts': 'typescript',
    '.tsx': 'tsx',
    '.svelte': 'svelte',
    '.rs': 'rust',
    '.go': 'go',
    '.java': 'java',
    '.kt': 'kotlin',
    '.c': 'c',
    '.h': 'c',
    '.cpp': 'cpp',
    '.hpp': 'cpp',
    '.cs': 'csharp',
    '.rb': 'ruby',
    '.php': 'php',
    '.swift': 'swift',
    '.sh': 'bash',
    '.json': 'json',
    '.toml': 'toml',
    '.yaml': 'yaml',
    '.yml': 'yaml',
    '.md': 'markdown',
    '.html': 'html',
    '.css': 'css',
    '.sql': 'sql',
}


def file_path(diff: Optional[FileDiff]) -> str:
    """Path of the file, preferring the after side."""
    if diff is None:
        return ""
    if diff.after is not None:
        return diff.after.path
    if diff.before is not None:
        return diff.before.path
    return ""


def display_path(diff: Optional[FileDiff]) -> str:
    """Path for titles; renames show as 'old → new'."""
    if diff is None:
        return ""
    if (
        diff.before is not None
        and diff.after is not None
        and diff.before.path != diff.after.path
    ):
        return f"{diff.before.path} → {diff.after.path}"
    return file_path(diff)


def language_for_path(path: str) -> Optional[str]:
    """Language id from a path's extension, or None if unknown."""
    suffix = PurePosixPath(path).suffix.lower()
    return EXTENSION_LANGUAGES.get(suffix)


def language_from_diff(diff: Optional[FileDiff]) -> Optional[str]:
    return language_for_path(file_path(diff))


def is_binary_diff(diff: Optional[FileDiff]) -> bool:
    return diff is not None and diff.is_binary


def text_lines(diff: Optional[FileDiff], side: Side) -> tuple[str, ...]:
    """Lines of one side; empty when the side is absent or binary."""
    if diff is None:
        return ()
    diff_file = diff.file(side)
    if diff_file is None:
        return ()
    return diff_file.lines
