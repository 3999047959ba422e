"""Tagged console diagnostics and the stream filter hiding debug chatter."""

from __future__ import annotations

import io
import sys

DEBUG_MARKER = "[SparkleTree][DEBUG]"
WARN_MARKER = "[SparkleTree][WARN]"


def debug(message: str) -> None:
    print(f"{DEBUG_MARKER} {message}", flush=True)


def warn(message: str) -> None:
    print(f"{WARN_MARKER} {message}", file=sys.stderr, flush=True)


class _DebugSilencer(io.TextIOBase):
    """Stream wrapper dropping lines that carry ``marker``."""

    def __init__(self, stream: io.TextIOBase, marker: str) -> None:
        super().__init__()
        self._stream = stream
        self._marker = marker
        self._buffer: str = ""

    def write(self, text: str) -> int:  # type: ignore[override]
        self._buffer += text
        while "\n" in self._buffer:
            line, self._buffer = self._buffer.split("\n", 1)
            self._emit(line + "\n")
        return len(text)

    def flush(self) -> None:  # type: ignore[override]
        if self._buffer:
            self._emit(self._buffer)
            self._buffer = ""
        self._stream.flush()

    def _emit(self, chunk: str) -> None:
        if self._marker not in chunk:
            self._stream.write(chunk)

    def writelines(self, lines) -> None:  # type: ignore[override]
        for line in lines:
            self.write(line)

    def __getattr__(self, name):
        return getattr(self._stream, name)


def install_debug_silencer(marker: str = DEBUG_MARKER) -> None:
    if marker and not isinstance(sys.stdout, _DebugSilencer):
        sys.stdout = _DebugSilencer(sys.stdout, marker)
    if marker and not isinstance(sys.stderr, _DebugSilencer):
        sys.stderr = _DebugSilencer(sys.stderr, marker)


def remove_debug_silencer() -> None:
    if isinstance(sys.stdout, _DebugSilencer):
        sys.stdout.flush()
        sys.stdout = sys.stdout._stream
    if isinstance(sys.stderr, _DebugSilencer):
        sys.stderr.flush()
        sys.stderr = sys.stderr._stream
