"""Line oriented reading of the generator output."""

from __future__ import annotations

__all__ = ["LineBuffer", "LineChannel"]

import asyncio

from .models import InvalidEncoding, NoReaderBound, StreamIOFailure

# i3status lines are short, but a generator with many blocks can exceed asyncio's 64KiB default
STREAM_LIMIT = 1024 * 1024


class LineBuffer:
    """Text buffer holding at most one record between reads.

    Reused for the whole run, cleared after each flush.
    """

    def __init__(self) -> None:
        self.text = ""

    def append(self, text: str) -> None:
        """Append decoded text."""
        self.text += text

    def set(self, text: str) -> None:
        """Replace the content."""
        self.text = text

    def clear(self) -> None:
        """Empty the buffer."""
        self.text = ""


class LineChannel:
    """Exclusive reader over a byte stream, one newline-delimited record at a time.

    Usage:
        channel = LineChannel(proc.stdout)
        buffer = LineBuffer()
        while await channel.read_line(buffer):
            ...
    """

    def __init__(self, reader: asyncio.StreamReader | None = None) -> None:
        self._reader = reader

    @property
    def is_bound(self) -> bool:
        """Check if a stream is attached."""
        return self._reader is not None

    def bind(self, reader: asyncio.StreamReader) -> None:
        """Attach the stream to read from."""
        self._reader = reader

    async def read_line(self, buffer: LineBuffer) -> int:
        """Read up to and including the next newline, or to the end of the stream.

        The decoded text is appended to `buffer`.

        Returns:
            The number of bytes appended, 0 once the stream is closed

        Raises:
            NoReaderBound: no stream was attached
            InvalidEncoding: the line is not valid UTF-8
            StreamIOFailure: the read failed
        """
        if self._reader is None:
            msg = "A reader has not been set for the generator process"
            raise NoReaderBound(msg)
        try:
            data = await self._reader.readline()
        except ValueError as e:
            # raised by StreamReader when a line exceeds its limit
            msg = f"Line too long in generator output: {e}"
            raise StreamIOFailure(msg) from e
        except OSError as e:
            msg = f"Failed to read generator output: {e}"
            raise StreamIOFailure(msg) from e
        if not data:
            return 0
        try:
            buffer.append(data.decode("utf-8"))
        except UnicodeDecodeError as e:
            msg = f"Generator output is not valid UTF-8: {data!r}"
            raise InvalidEncoding(msg) from e
        return len(data)
