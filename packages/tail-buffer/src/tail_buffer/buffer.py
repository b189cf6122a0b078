"""
TailBuffer for keeping the last N lines of a byte stream.

This module implements a line-oriented ring buffer that behaves like a
writable stream. Writes may arrive in arbitrary chunks; only completed
lines count toward the limit, and the unterminated tail of the stream is
held separately until its newline arrives.

- Uses deque(maxlen=N) for automatic oldest-first eviction
- Stores lines as bytes so chunk boundaries inside multi-byte characters
  never matter; decoding happens only in the text views
- A single threading.Lock guards all state, held for the full duration
  of every public operation
"""

import codecs
import io
import logging
import threading
from collections import deque
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from tail_buffer.exceptions import ShortWriteError

if TYPE_CHECKING:
    from tail_buffer.config import TailSettings

logger = logging.getLogger(__name__)

TERMINATOR = b"\n"

# Handlers that never raise in either direction
ERROR_POLICIES = ("replace", "backslashreplace", "ignore")


def check_encoding(encoding: str) -> str:
    """
    Validate that an encoding can carry the line terminator as a single byte.

    Lines are split on b"\\n" before decoding, so only encodings that map
    "\\n" to exactly b"\\n" (UTF-8, Latin-1, ASCII, ...) are usable.

    Raises:
        ValueError: If the codec is unknown, not a text encoding, or
            encodes "\\n" differently (UTF-16, UTF-32, UTF-8-SIG)
    """
    try:
        codecs.lookup(encoding)
        newline = "\n".encode(encoding)
    except LookupError as e:
        raise ValueError(f"Unknown text encoding {encoding!r}: {e}") from e
    if newline != TERMINATOR:
        raise ValueError(
            f"Encoding {encoding!r} encodes newline as {newline!r}; "
            f"only ASCII-compatible encodings are supported"
        )
    return encoding


def check_errors(errors: str) -> str:
    """
    Validate a codec error policy.

    Raises:
        ValueError: If errors is not one of ERROR_POLICIES
    """
    if errors not in ERROR_POLICIES:
        raise ValueError(f"Invalid errors policy {errors!r}. Must be one of {list(ERROR_POLICIES)}")
    return errors


class TailBuffer:
    """
    Fixed-size ring buffer over the completed lines of a byte stream.

    Thread-safe for all operations. Accepts bytes or text, so it can be
    handed to anything that expects a writable stream (logging handlers,
    print(file=...), subprocess output pumps).

    Example:
        tail = TailBuffer(max_lines=3)
        tail.write(b"line1\\nline2\\nline3\\nli")
        tail.lines()   # ["line2", "line3", "li"]
        str(tail)      # "line2\\nline3\\nli"
    """

    def __init__(
        self,
        max_lines: int = 50,
        *,
        encoding: str = "utf-8",
        errors: str = "replace",
    ) -> None:
        """
        Initialize buffer with maximum line count.

        Args:
            max_lines: Maximum number of completed lines to keep. Negative
                values are treated as 0, which retains nothing.
            encoding: Encoding used when accepting text and producing text views
            errors: Codec error policy for the same conversions, one of
                ERROR_POLICIES so that reads never raise

        Raises:
            ValueError: If encoding is not ASCII-compatible or errors is
                not a non-raising policy
        """
        if max_lines < 0:
            logger.warning(
                f"Negative max_lines ({max_lines}) treated as 0; buffer retains nothing"
            )
            max_lines = 0
        self._max_lines = max_lines
        self._encoding = check_encoding(encoding)
        self._errors = check_errors(errors)
        self._lines: deque[bytes] = deque(maxlen=max_lines)
        self._pending = bytearray()
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: "TailSettings | None" = None) -> "TailBuffer":
        """
        Build a buffer from TailSettings (environment defaults when omitted).

        Args:
            settings: Settings to read max_lines, encoding and errors from

        Returns:
            New, empty TailBuffer
        """
        if settings is None:
            from tail_buffer.config import TailSettings

            settings = TailSettings()
        return cls(
            settings.max_lines,
            encoding=settings.encoding,
            errors=settings.errors,
        )

    @property
    def max_lines(self) -> int:
        """Return the line capacity."""
        return self._max_lines

    @property
    def encoding(self) -> str:
        """Return the text encoding."""
        return self._encoding

    @property
    def errors(self) -> str:
        """Return the codec error policy."""
        return self._errors

    @property
    def closed(self) -> bool:
        """A TailBuffer is never closed."""
        return False

    def writable(self) -> bool:
        return True

    def flush(self) -> None:
        """No-op; writes are applied immediately."""

    def write(self, data: bytes | bytearray | memoryview | str) -> int:
        """
        Append data to the stream and commit any lines it completes.

        The unterminated remainder is kept as the pending fragment. When
        the number of completed lines exceeds max_lines, the oldest lines
        are dropped first.

        Args:
            data: Bytes-like object or text

        Returns:
            len(data), always

        Raises:
            TypeError: If data is neither bytes-like nor str
        """
        if isinstance(data, str):
            raw = data.encode(self._encoding, self._errors)
        elif isinstance(data, (bytes, bytearray, memoryview)):
            raw = bytes(data)
        else:
            raise TypeError(
                f"write() argument must be bytes-like or str, not {type(data).__name__}"
            )

        with self._lock:
            self._pending += raw
            # A terminator can only appear in the bytes just added
            if TERMINATOR not in raw:
                return len(data)

            *completed, tail = self._pending.split(TERMINATOR)
            self._pending = tail
            # deque(maxlen=0) discards everything, maxlen=N evicts oldest
            self._lines.extend(bytes(line) for line in completed)

        return len(data)

    def _snapshot(self) -> list[bytes]:
        """Copy the visible window. Caller must hold the lock."""
        if self._max_lines == 0:
            return []
        result = list(self._lines)
        if self._pending:
            result.append(bytes(self._pending))
            if len(result) > self._max_lines:
                result = result[-self._max_lines :]
        return result

    def raw_lines(self) -> list[bytes]:
        """
        Get the visible window as undecoded lines.

        Returns:
            Committed lines followed by the pending fragment (if any),
            trimmed from the front to at most max_lines
        """
        with self._lock:
            return self._snapshot()

    def lines(self) -> list[str]:
        """
        Get the visible window as text lines.

        Returns:
            List of lines, newest last. The list is a copy.
        """
        return [
            line.decode(self._encoding, self._errors) for line in self.raw_lines()
        ]

    def getvalue(self) -> bytes:
        """
        Get the visible window joined with newlines.

        Ends with a newline only when the stream last ended on a line
        boundary and at least one committed line exists.

        Returns:
            Joined window as bytes
        """
        with self._lock:
            result = self._snapshot()
            trailing = not self._pending and len(self._lines) > 0

        value = TERMINATOR.join(result)
        if trailing and result:
            value += TERMINATOR
        return value

    def write_to(self, sink: Any) -> int:
        """
        Write the joined window to another stream in a single write call.

        Text streams (io.TextIOBase) receive decoded text, anything else
        receives bytes. The lock is not held while the sink is written.

        Args:
            sink: Object with a write() method

        Returns:
            Number of units the sink reported as written

        Raises:
            ShortWriteError: If the sink accepted fewer units than offered
        """
        payload: bytes | str = self.getvalue()
        if isinstance(sink, io.TextIOBase):
            payload = payload.decode(self._encoding, self._errors)

        written = sink.write(payload)
        if written is None:
            written = len(payload)
        if written < len(payload):
            raise ShortWriteError(written, len(payload))
        return written

    def __bytes__(self) -> bytes:
        return self.getvalue()

    def __str__(self) -> str:
        return self.getvalue().decode(self._encoding, self._errors)

    def __len__(self) -> int:
        """Return number of lines in the visible window."""
        with self._lock:
            return len(self._snapshot())

    def __iter__(self) -> Iterator[str]:
        """Iterate over a snapshot of the visible window."""
        return iter(self.lines())

    def __repr__(self) -> str:
        with self._lock:
            committed = len(self._lines)
            pending = len(self._pending)
        return (
            f"TailBuffer(max_lines={self._max_lines}, "
            f"committed={committed}, pending_bytes={pending})"
        )
