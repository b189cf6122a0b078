"""Command line interface for tail-buffer."""

from tail_buffer.cli.main import app, main

__all__ = ["app", "main"]
