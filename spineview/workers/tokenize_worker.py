"""
Background tokenization.

Runs the tokenization service for one side of a diff on the global thread
pool. Results are tagged with the cache generation they were requested for
so the receiver can drop those that arrive after the diff changed.
"""

from __future__ import annotations

from typing import Callable, Optional

from PyQt6.QtCore import QObject, QRunnable, QThreadPool, pyqtSignal, pyqtSlot

from spineview.core.models import Side
from spineview.services.tokens import TokenCache, TokenizationService


class TokenizeSignals(QObject):
    """
    Signals for worker communication.

    Emitted from the pool thread; receivers in the UI thread get them
    queued.
    """
    # (generation, side, token lines)
    finished = pyqtSignal(int, object, object)

    # (generation, side, message)
    error = pyqtSignal(int, object, str)


class TokenizeWorker(QRunnable):
    """
    Tokenize the code of one side.

    Usage:
        worker = TokenizeWorker(service, code, language, generation, Side.AFTER)
        worker.signals.finished.connect(cache_owner.on_tokens)
        QThreadPool.globalInstance().start(worker)
    """

    def __init__(
        self,
        service: TokenizationService,
        code: str,
        language: Optional[str],
        generation: int,
        side: Side
    ):
        super().__init__()
        self.service = service
        self.code = code
        self.language = language
        self.generation = generation
        self.side = side
        self.signals = TokenizeSignals()
        self._cancelled = False
        self.setAutoDelete(True)

    @pyqtSlot()
    def run(self) -> None:
        """Execute the tokenizer."""
        try:
            tokens = self.service.highlight(self.code, self.language)
            if not self._cancelled:
                self.signals.finished.emit(self.generation, self.side, tokens)
        except Exception as e:
            self.signals.error.emit(self.generation, self.side, f"{type(e).__name__}: {e}")

    def cancel(self) -> None:
        """Request cancellation; a running tokenizer still completes."""
        self._cancelled = True


def start_tokenizing(
    cache: TokenCache,
    on_finished: Callable[[int, Side, object], None],
    on_error: Callable[[int, Side, str], None],
    pool: Optional[QThreadPool] = None
) -> list[TokenizeWorker]:
    """
    Submit one worker per non-empty side of the cache's current diff.

    Returns:
        The submitted workers
    """
    if cache.service is None:
        return []

    pool = pool or QThreadPool.globalInstance()
    workers = []
    for side in Side:
        code = cache.code(side)
        if not code:
            continue
        worker = TokenizeWorker(cache.service, code, cache.language, cache.generation, side)
        worker.signals.finished.connect(on_finished)
        worker.signals.error.connect(on_error)
        pool.start(worker)
        workers.append(worker)
    return workers
