"""The relay: i3bar protocol handshake and line forwarding.

A run walks through these states, each entered once:

    SPAWNING -> HEADER_EXCHANGE -> ARRAY_OPEN -> FIRST_ELEMENT -> STEADY_STATE

STEADY_STATE repeats until the generator closes its output (CLOSED).
Any error ends the run in ABORTED. A generator started without a captured
stdout is terminated first.
"""

from __future__ import annotations

__all__ = ["Relay"]

import logging
from typing import TYPE_CHECKING

from .channel import LineBuffer, LineChannel
from .constants import LOGGER_NAME
from .models import OutputHandleUnavailable, RelayError, RelayState, SpawnFailure, StreamClosed
from .process import spawn
from .protocol import ProtocolHeader, StatusBlock, encode_status_line
from .sink import OutputSink

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from .config import GeneratorConfig
    from .process import GeneratorProcess


class Relay:
    """Forwards the generator output to the bar, enabling click events.

    The relay owns the generator process, the channel over its output and the sink.
    A relay built with an already bound channel skips SPAWNING, which allows
    driving it from any stream.
    """

    def __init__(
        self,
        config: GeneratorConfig,
        sink: OutputSink | None = None,
        channel: LineChannel | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.sink = sink if sink is not None else OutputSink()
        self.channel = channel if channel is not None else LineChannel()
        self.buffer = LineBuffer()
        self.process: GeneratorProcess | None = None
        self.log = log or logging.getLogger(LOGGER_NAME)
        self.header: ProtocolHeader | None = None
        self.forwarded = 0
        self.state = RelayState.HEADER_EXCHANGE if self.channel.is_bound else RelayState.SPAWNING
        self._handlers: dict[RelayState, Callable[[], Awaitable[None]]] = {
            RelayState.SPAWNING: self._on_spawning,
            RelayState.HEADER_EXCHANGE: self._on_header_exchange,
            RelayState.ARRAY_OPEN: self._on_array_open,
            RelayState.FIRST_ELEMENT: self._on_first_element,
            RelayState.STEADY_STATE: self._on_steady_state,
        }

    # Buffer & writes {{{

    def clear(self) -> None:
        """Empty the line buffer."""
        self.buffer.clear()

    async def read_line(self) -> int:
        """Read the next generator line into the buffer."""
        return await self.channel.read_line(self.buffer)

    def flush_buffer(self) -> None:
        """Write the buffered record, newline terminated, then clear it."""
        self.sink.write_record(self.buffer.text)
        self.clear()

    def write_str(self, text: str) -> None:
        """Write raw text, no newline added."""
        self.sink.write(text)

    def write_message(self, text: str) -> None:
        """Write a status line of our own, followed by the array separator.

        The trailing `,` makes the message a complete element of the infinite
        array, so it must be followed by an element without a leading separator.
        """
        self.buffer.set(encode_status_line([StatusBlock(full_text=text)]))
        self.flush_buffer()
        self.write_str(",")

    # }}}
    # Protocol steps {{{

    async def _read_required(self) -> None:
        """Read one line, the stream must not be closed."""
        if not await self.read_line():
            msg = f"Generator closed its output during {self.state.value.replace('_', ' ')}"
            raise StreamClosed(msg)

    async def pipe_header(self) -> ProtocolHeader:
        """Forward the header line with click events enabled.

        Nothing is written if the header can't be decoded.
        """
        await self._read_required()
        header = ProtocolHeader.decode(self.buffer.text)
        self.header = header.with_click_events(True)
        self.buffer.set(self.header.encode())
        self.flush_buffer()
        return self.header

    async def pipe_line(self) -> bool:
        """Forward one line verbatim.

        Returns:
            False if the generator closed its output
        """
        if not await self.read_line():
            return False
        self.flush_buffer()
        return True

    async def _spawn(self) -> None:
        try:
            self.process = await spawn(self.config)
        except SpawnFailure:
            self._set_state(RelayState.ABORTED)
            raise
        self.log.info("Started %s (pid %s)", " ".join(self.process.argv), self.process.pid)
        stdout = self.process.stdout
        if stdout is None:
            self._set_state(RelayState.ABORTED)
            self.log.error("Failed to acquire handle to the generator's stdout")
            self.log.error("Killing %s...", self.process.argv[0])
            await self.process.terminate()
            msg = f"No stdout captured for {self.process.argv[0]}"
            raise OutputHandleUnavailable(msg)
        self.channel.bind(stdout)

    def _set_state(self, state: RelayState) -> None:
        self.log.debug("relay state: %s -> %s", self.state.value, state.value)
        self.state = state

    async def step(self) -> RelayState:
        """Run the action of the current state and move to the next one.

        Returns:
            The new state
        """
        handler = self._handlers.get(self.state)
        if handler is None:
            msg = f"Relay run is over ({self.state.value})"
            raise RuntimeError(msg)
        await handler()
        return self.state

    async def _on_spawning(self) -> None:
        await self._spawn()
        self._set_state(RelayState.HEADER_EXCHANGE)

    async def _on_header_exchange(self) -> None:
        await self.pipe_header()
        self._set_state(RelayState.ARRAY_OPEN)

    async def _on_array_open(self) -> None:
        # start of the infinite array
        await self._read_required()
        self.flush_buffer()
        self._set_state(RelayState.FIRST_ELEMENT)

    async def _on_first_element(self) -> None:
        # the only element which isn't prefixed with `,`
        await self._read_required()
        self.flush_buffer()
        self._set_state(RelayState.STEADY_STATE)

    async def _on_steady_state(self) -> None:
        if await self.pipe_line():
            self.forwarded += 1
        else:
            self._set_state(RelayState.CLOSED)

    # }}}

    async def run(self) -> RelayState:
        """Relay until the generator closes its output.

        The generator is stopped when the run ends, whatever the reason.

        Returns:
            The final state, CLOSED on a clean end

        Raises:
            RelayError: on the first failure, nothing is retried. The state is ABORTED.
        """
        try:
            while not self.state.is_terminal:
                await self.step()
        except RelayError:
            if not self.state.is_terminal:
                self._set_state(RelayState.ABORTED)
            raise
        finally:
            await self.stop()
        self.log.info("Generator closed its output, %d lines relayed after the first status line", self.forwarded)
        return self.state

    async def stop(self) -> None:
        """Stop the generator if it is still running."""
        if self.process is not None and self.process.is_alive:
            returncode = await self.process.terminate()
            self.log.debug("Generator stopped with code %s", returncode)
