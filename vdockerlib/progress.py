"""
A small console ticker shown while a blocking external command runs.

The ticker lives on a daemon thread which sleeps on a one-shot stop event
between frames, so stopping it is observed within one tick.
"""

import sys
import threading
from enum import Enum
from itertools import cycle
from typing import Optional, Sequence, TextIO

from vdockerlib import constants, logutil

logger = logutil.getLogger(__name__)

DEFAULT_FRAMES = ('.  ', '.. ', '...', ' ..', '  .', '   ')


class IndicatorState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class ProgressIndicator:
    """
    Renders a repeating animation until stopped.

    An indicator is single use: IDLE -> RUNNING -> STOPPED. It never stops by itself.
    """

    def __init__(self, message: str = "", interval: float = constants.PROGRESS_INTERVAL,
                 stream: Optional[TextIO] = None, frames: Sequence[str] = DEFAULT_FRAMES, enabled: bool = True):
        if interval <= 0:
            raise ValueError("interval must be positive")
        if not frames:
            raise ValueError("at least one frame is required")
        self.message = message
        self.interval = interval
        self.stream = stream if stream is not None else sys.stderr
        self.frames = tuple(frames)
        self.enabled = enabled
        self.state = IndicatorState.IDLE
        self.frames_rendered = 0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._width = 0

    def start(self) -> "ProgressIndicator":
        """
        Begin rendering frames on a background thread.
        :return: The handle to pass to stop()
        """
        if self.state is not IndicatorState.IDLE:
            raise RuntimeError(f"Cannot start a progress indicator that is {self.state.value}")
        self.state = IndicatorState.RUNNING
        if self.enabled:
            self._thread = threading.Thread(target=self._run, name="progress-indicator", daemon=True)
            self._thread.start()
        return self

    def stop(self, handle: Optional["ProgressIndicator"] = None):
        """
        Stop rendering and clear the line. Returns within one tick interval.
        No frame is rendered after this returns. Stopping twice is harmless.
        """
        if handle is not None and handle is not self:
            raise ValueError("handle does not belong to this progress indicator")
        if self.state is IndicatorState.STOPPED:
            return
        self.state = IndicatorState.STOPPED
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
            self._clear()

    def __enter__(self):
        return self.start()

    def __exit__(self, *args):
        self.stop()

    def _run(self):
        for frame in cycle(self.frames):
            if self._stop_event.is_set():
                break
            self._render(frame)
            if self._stop_event.wait(timeout=self.interval):
                break

    def _render(self, frame: str):
        text = f'{self.message} {frame}' if self.message else frame
        self._width = max(self._width, len(text))
        try:
            self.stream.write('\r' + text)
            self.stream.flush()
        except (OSError, ValueError):
            # The console went away; the command itself keeps running
            logger.debug("Unable to render progress frame", exc_info=True)
            self._stop_event.set()
            return
        self.frames_rendered += 1

    def _clear(self):
        if not self.frames_rendered:
            return
        try:
            self.stream.write('\r' + ' ' * self._width + '\r')
            self.stream.flush()
        except (OSError, ValueError):
            logger.debug("Unable to clear progress line", exc_info=True)
