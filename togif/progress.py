"""
Progress reporting.

The pipeline emits :class:`~togif.types.ProgressEvent` values into a
sink.  ``ProgressChannel`` is a bounded queue decoupling the pipeline
from the presentation layer; ``ProgressDisplay`` consumes it on a
background thread and drives a tqdm progress bar until the terminal
event arrives, then prints a summary.

Emitting never blocks the pipeline for ordinary events: when the queue
is full they are dropped.  The terminal event waits a bounded time.
The summary lists the files the caller passed in, so dropped events
never change it.
"""

from __future__ import annotations

import logging
import queue
import sys
import threading
from pathlib import Path
from typing import IO, List, Optional, Sequence, Union

from tqdm import tqdm

from togif.types import ProgressEvent

logger = logging.getLogger(__name__)

_CLOSED = object()

_MAX_DISPLAY_PATH = 50


class NullProgress:
    """Sink that discards every event."""

    def emit(self, event: ProgressEvent) -> None:
        pass

    def close(self) -> None:
        pass


class ProgressChannel:
    """Bounded, non-blocking event queue between pipeline and display."""

    def __init__(self, maxsize: int = 256, terminal_timeout: float = 1.0) -> None:
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self.terminal_timeout = terminal_timeout
        self.dropped = 0

    def emit(self, event: ProgressEvent) -> None:
        if event.is_terminal:
            try:
                self._queue.put(event, timeout=self.terminal_timeout)
            except queue.Full:
                self.dropped += 1
                logger.warning("Progress consumer is not draining; final event dropped.")
            return
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            self.dropped += 1

    def close(self) -> None:
        """Tell the consumer no more events will arrive."""
        try:
            self._queue.put(_CLOSED, timeout=self.terminal_timeout)
        except queue.Full:
            logger.warning("Progress consumer is not draining; close signal dropped.")

    def get(self, timeout: Optional[float] = None):
        """Next event, or None once the channel has been closed."""
        item = self._queue.get(timeout=timeout)
        return None if item is _CLOSED else item


def _shorten(path: str) -> str:
    if len(path) > _MAX_DISPLAY_PATH:
        return "..." + path[-(_MAX_DISPLAY_PATH - 3):]
    return path


def render_summary(
    processed_files: List[str],
    output_path: Optional[Path],
    debug: bool = False,
) -> str:
    """Text printed once the conversion has finished."""
    lines = []
    if debug:
        lines.append("Conversion completed!")
        lines.append("")
        lines.append(f"Processed {len(processed_files)} files:")
        width = len(str(len(processed_files)))
        for i, name in enumerate(processed_files, start=1):
            lines.append(f"{i:>{width}}. {_shorten(name)}")
    else:
        lines.append(f"Done! Processed {len(processed_files)} files.")
    if output_path is not None:
        if debug:
            lines.append("")
        lines.append(f"GIF file generated at: {output_path}")
    return "\n".join(lines) + "\n"


class ProgressDisplay:
    """
    Presentation layer: consumes a channel on a background thread.

    Usage::

        with ProgressDisplay(files) as display:
            convert(files, "out.gif", progress=display.channel)
    """

    def __init__(
        self,
        files: Sequence[Union[str, Path]],
        debug: bool = False,
        stream: Optional[IO[str]] = None,
        channel: Optional[ProgressChannel] = None,
        bar: bool = True,
    ) -> None:
        self.files: List[str] = [str(f) for f in files]
        self.debug = debug
        self.stream = stream or sys.stderr
        self.channel = channel or ProgressChannel()
        self.show_bar = bar
        self.output_path: Optional[Path] = None
        self.finished = False
        self._thread: Optional[threading.Thread] = None

    def __enter__(self) -> "ProgressDisplay":
        self._thread = threading.Thread(target=self._run, name="togif-progress", daemon=True)
        self._thread.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.channel.close()
        if self._thread is not None:
            self._thread.join(timeout=5.0)

    def _run(self) -> None:
        bar = None
        if self.show_bar:
            bar = tqdm(total=None, desc="Converting images", unit="step",
                       file=self.stream, dynamic_ncols=True, leave=False)
        try:
            while True:
                event = self.channel.get()
                if event is None:
                    break
                self.handle(event, bar)
                if event.is_terminal:
                    break
        finally:
            if bar is not None:
                bar.close()
        if self.finished:
            self.stream.write(render_summary(self.files, self.output_path, self.debug))
            self.stream.flush()

    def handle(self, event: ProgressEvent, bar=None) -> None:
        """Apply one event to the display state."""
        if event.is_terminal:
            self.finished = True
            self.output_path = event.output_path
        if bar is not None:
            if bar.total != event.total:
                bar.total = event.total
            bar.n = event.processed
            bar.set_postfix_str(f"{event.stage.value}: {Path(event.current_item).name}")
            bar.refresh()
