"""
Exception classes for tail buffer output.

- TailBufferError: Base class for errors raised by this package
- ShortWriteError: A sink accepted only part of the data handed to it

Errors raised by a sink itself (OSError, ValueError on a closed file, ...)
are never wrapped; they reach the caller unchanged.
"""


class TailBufferError(Exception):
    """Base class for tail buffer errors."""


class ShortWriteError(TailBufferError):
    """
    Raised when a sink writes fewer units than it was given.

    Attributes:
        written: Units the sink reported as written
        expected: Units that were offered
    """

    def __init__(self, written: int, expected: int) -> None:
        self.written = written
        self.expected = expected
        super().__init__(
            f"Short write: sink accepted {written} of {expected}. "
            f"Retry write_to() to send the current window again."
        )
