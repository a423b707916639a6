"""
Background workers for non-blocking operations.

Workers run on the Qt thread pool and report back through Qt signals,
which are delivered to the UI thread.
"""

from spineview.workers.tokenize_worker import (
    TokenizeSignals,
    TokenizeWorker,
    start_tokenizing,
)

__all__ = [
    'TokenizeSignals',
    'TokenizeWorker',
    'start_tokenizing',
]
