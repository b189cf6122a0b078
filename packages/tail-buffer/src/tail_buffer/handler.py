"""Logging handler that keeps the last N formatted log lines in memory."""

import logging

from tail_buffer.buffer import TailBuffer


class TailHandler(logging.StreamHandler):
    """
    StreamHandler whose stream is a TailBuffer.

    Each record is formatted and written followed by the handler's
    terminator, so a message containing newlines occupies several lines
    of the window, exactly as it would on a terminal.

    Example:
        handler = TailHandler(max_lines=100)
        logging.getLogger("worker").addHandler(handler)
        ...
        recent = handler.lines()
    """

    def __init__(self, max_lines: int = 50, buffer: TailBuffer | None = None) -> None:
        """
        Args:
            max_lines: Window size when no buffer is given
            buffer: Existing TailBuffer to write into
        """
        super().__init__(buffer if buffer is not None else TailBuffer(max_lines))

    @property
    def buffer(self) -> TailBuffer:
        return self.stream

    def lines(self) -> list[str]:
        return self.stream.lines()

    def getvalue(self) -> bytes:
        return self.stream.getvalue()
