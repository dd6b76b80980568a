"""Consumer facing output stream."""

__all__ = ["OutputSink"]

import sys
from typing import BinaryIO

from .models import StreamIOFailure


class OutputSink:
    """Writes protocol text to the consumer, flushing after every write.

    The bar redraws as soon as a full line arrives, so nothing is held back.
    """

    def __init__(self, stream: BinaryIO | None = None) -> None:
        """Initialize.

        Args:
            stream: binary stream to write to, defaults to the process stdout
        """
        self._stream = stream if stream is not None else sys.stdout.buffer

    def write(self, text: str) -> None:
        """Write `text` as is.

        Raises:
            StreamIOFailure: the consumer went away or the write failed
        """
        try:
            self._stream.write(text.encode("utf-8"))
            self._stream.flush()
        except OSError as e:
            msg = f"Failed to write to the status bar: {e}"
            raise StreamIOFailure(msg) from e

    def write_record(self, text: str) -> None:
        """Write one record terminated by exactly one newline."""
        self.write(text if text.endswith("\n") else f"{text}\n")
