"""
Tail Buffer Library

A bounded, thread-safe line ring buffer that works as a writable stream,
keeping only the most recent N lines of everything written to it (the
streaming analogue of ``tail -n``). This package provides:

- TailBuffer: The ring buffer itself
- TailHandler: logging handler that retains recent log lines
- ProcessCapture / run_and_capture: Subprocess output capture
- TailSettings: Environment-based defaults
- CLI infrastructure: Typer-based ``tail-buffer`` command
"""

__version__ = "0.1.0"

from tail_buffer.buffer import TailBuffer
from tail_buffer.capture import (
    CapturedProcess,
    CaptureResult,
    ProcessCapture,
    run_and_capture,
)
from tail_buffer.config import TailSettings
from tail_buffer.exceptions import ShortWriteError, TailBufferError
from tail_buffer.handler import TailHandler

__all__ = [
    "__version__",
    # Core
    "TailBuffer",
    # Logging
    "TailHandler",
    # Subprocess capture
    "CapturedProcess",
    "CaptureResult",
    "ProcessCapture",
    "run_and_capture",
    # Configuration
    "TailSettings",
    # Errors
    "TailBufferError",
    "ShortWriteError",
]
