"""Environment-based configuration for tail buffers."""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from tail_buffer.buffer import check_encoding


class TailSettings(BaseSettings):
    """Tail buffer defaults.

    All settings can be overridden via environment variables with
    TAIL_BUFFER_ prefix. For example:
        TAIL_BUFFER_MAX_LINES=200
        TAIL_BUFFER_ERRORS=backslashreplace
    """

    # Window size
    max_lines: int = 50

    # Text boundary; only policies that never raise on arbitrary input
    encoding: str = "utf-8"
    errors: Literal["replace", "backslashreplace", "ignore"] = "replace"

    # Subprocess capture and CLI reads
    chunk_size: int = Field(default=4096, gt=0)
    terminate_timeout: float = Field(default=5.0, ge=0)  # seconds

    model_config = {"env_prefix": "TAIL_BUFFER_"}

    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        return check_encoding(v)
