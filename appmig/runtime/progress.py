#!/usr/bin/env python3
# CUI // SP-CTI
"""Progress spinner for blocking calls.

A daemon thread redraws ``<message><mark>`` on the current line until the
wrapped call returns. The spinner owns nothing but its output stream; it is
stopped unconditionally (even when the call raises), joined, given a short
flush delay, and the line is redrawn without the mark.

Usage:
    reporter = ProgressReporter()
    with reporter.track("Checking current serving version... "):
        result = executor.execute("gcloud", args)
"""

import sys
import threading
import time
from contextlib import contextmanager
from typing import Any, Callable, Optional, TextIO

DEFAULT_MARKS = "-\\|/"
DEFAULT_FRAME_INTERVAL = 0.1
DEFAULT_FLUSH_DELAY = 0.0005


class _Spinner(threading.Thread):
    """Background redraw loop; exits once ``stop_event`` is set."""

    def __init__(self, message: str, stream: TextIO, marks: str, frame_interval: float):
        super().__init__(name="appmig-spinner", daemon=True)
        self.message = message
        self.stream = stream
        self.marks = marks
        self.frame_interval = frame_interval
        self.stop_event = threading.Event()

    def run(self):
        i = 0
        while not self.stop_event.wait(self.frame_interval):
            mark = self.marks[i % len(self.marks)]
            self.stream.write(f"\r{self.message}{mark}")
            self.stream.flush()
            i += 1


class ProgressReporter:
    """Renders an animated status line while a blocking call is in flight.

    Args:
        stream: Where to draw (default ``sys.stdout``).
        enabled: When False no thread is started; only the final line is written.
        frame_interval: Seconds between frames.
        flush_delay: Grace pause after stopping before the final redraw.
        marks: Spinner frames, cycled in order.
    """

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        enabled: bool = True,
        frame_interval: float = DEFAULT_FRAME_INTERVAL,
        flush_delay: float = DEFAULT_FLUSH_DELAY,
        marks: str = DEFAULT_MARKS,
    ):
        self.stream = stream if stream is not None else sys.stdout
        self.enabled = enabled
        self.frame_interval = frame_interval
        self.flush_delay = flush_delay
        self.marks = marks or DEFAULT_MARKS

    @contextmanager
    def track(self, message: str):
        spinner = None
        if self.enabled:
            spinner = _Spinner(message, self.stream, self.marks, self.frame_interval)
            spinner.start()
        try:
            yield
        finally:
            if spinner is not None:
                spinner.stop_event.set()
                spinner.join()
                time.sleep(self.flush_delay)
            self.stream.write(f"\r{message}")
            self.stream.flush()

    def call(self, message: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run ``func(*args, **kwargs)`` under :meth:`track` and return its result."""
        with self.track(message):
            return func(*args, **kwargs)
