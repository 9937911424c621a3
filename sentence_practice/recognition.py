"""Continuous voice recognition with bounded automatic restart.

Platform recognizers end continuous sessions on their own (silence,
timeouts, device hiccups). While the caller still wants to listen the
session is reopened after a backoff that doubles on every attempt, up to
a fixed number of restarts. A final transcript resets the count.
"""

import asyncio
import functools
import logging
from typing import Callable, Protocol

from sentence_practice.constants import (
    FATAL_RECOGNITION_ERRORS,
    IGNORED_RECOGNITION_ERRORS,
    RECOGNITION_MAX_RESTARTS,
    RECOGNITION_RESTART_BASE_DELAY,
)
from sentence_practice.models import RecognitionEvent

logger = logging.getLogger(__name__)

RESTART_EXHAUSTED = "restart-exhausted"


class RecognitionHandle(Protocol):
    def stop(self) -> None: ...


class RecognitionBackend(Protocol):
    def start(self, on_event: Callable[[RecognitionEvent], None]) -> RecognitionHandle: ...


class _Attempt:
    """One backend session; events from an attempt that is no longer current are dropped."""

    def __init__(self):
        self.handle: RecognitionHandle | None = None


class RecognitionSession:
    def __init__(
        self,
        backend: RecognitionBackend,
        on_transcript: Callable[[str, bool], None],
        on_error: Callable[[str], None] | None = None,
        max_restarts: int = RECOGNITION_MAX_RESTARTS,
        base_delay: float = RECOGNITION_RESTART_BASE_DELAY,
    ):
        self._backend = backend
        self._on_transcript = on_transcript
        self._on_error = on_error
        self.max_restarts = max_restarts
        self.base_delay = base_delay
        self._should_listen = False
        self._listening = False
        self._restarts = 0
        self._attempt: _Attempt | None = None
        self._timer: asyncio.TimerHandle | None = None

    @property
    def is_listening(self) -> bool:
        return self._listening

    @property
    def should_listen(self) -> bool:
        return self._should_listen

    @property
    def restart_count(self) -> int:
        return self._restarts

    def start(self) -> None:
        if self._should_listen:
            logger.debug("Recognition already started")
            return
        self._should_listen = True
        self._restarts = 0
        self._open()

    def stop(self) -> None:
        self._should_listen = False
        self._close()

    def _open(self) -> None:
        self._timer = None
        attempt = _Attempt()
        self._attempt = attempt
        self._listening = True
        handle = self._backend.start(functools.partial(self._on_event, attempt))
        attempt.handle = handle
        if attempt is not self._attempt:
            # Closed from inside start(), before the handle existed
            handle.stop()

    def _close(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        attempt = self._attempt
        self._attempt = None
        self._listening = False
        if attempt is not None and attempt.handle is not None:
            attempt.handle.stop()

    def _on_event(self, attempt: _Attempt, event: RecognitionEvent) -> None:
        if attempt is not self._attempt:
            return

        if event.kind == "transcript":
            if event.is_final:
                self._restarts = 0
            self._on_transcript(event.transcript, event.is_final)
        elif event.kind == "error":
            self._handle_error(event.code or "unknown")
        elif event.kind == "end":
            self._attempt = None
            self._listening = False
            if self._should_listen:
                self._schedule_restart()

    def _handle_error(self, code: str) -> None:
        if code in IGNORED_RECOGNITION_ERRORS:
            logger.debug("Recognition reported %s, still listening", code)
            return

        if code in FATAL_RECOGNITION_ERRORS:
            logger.warning("Recognition stopped: %s", code)
            self.stop()
        else:
            logger.warning("Recognition error: %s", code)
        self._report(code)

    def _schedule_restart(self) -> None:
        if self._restarts >= self.max_restarts:
            logger.warning("Recognition ended %d times in a row, giving up", self._restarts)
            self._should_listen = False
            self._report(RESTART_EXHAUSTED)
            return

        delay = self.base_delay * (2 ** self._restarts)
        self._restarts += 1
        logger.debug("Recognition ended unexpectedly, restart %d in %.2fs", self._restarts, delay)
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay, self._restart)

    def _restart(self) -> None:
        self._timer = None
        if self._should_listen:
            self._open()

    def _report(self, code: str) -> None:
        if self._on_error is not None:
            self._on_error(code)
