"""Error types and exit codes."""

from enum import Enum, IntEnum

__all__ = [
    "ConfigError",
    "DecodeError",
    "ExitCode",
    "InvalidEncoding",
    "NoReaderBound",
    "OutputHandleUnavailable",
    "RelayError",
    "RelayState",
    "SpawnFailure",
    "StreamClosed",
    "StreamIOFailure",
]


class RelayError(Exception):
    """Base class for every failure the relay reports."""


class SpawnFailure(RelayError):
    """The generator executable could not be found or started."""


class OutputHandleUnavailable(RelayError):
    """The generator started but its standard output was not captured."""


class DecodeError(RelayError, ValueError):
    """Malformed protocol JSON or an invalid enumerated value."""


class StreamIOFailure(RelayError):
    """Read or write fault on the generator or consumer side."""


class StreamClosed(StreamIOFailure):
    """The generator closed its output before the protocol framing was complete."""


class InvalidEncoding(StreamIOFailure):
    """The generator emitted bytes which are not valid UTF-8."""


class NoReaderBound(RelayError):
    """A read was attempted on a channel with no stream attached."""


class ConfigError(RelayError):
    """The relay configuration file is missing or can't be parsed."""


class RelayState(Enum):
    """Protocol phases of a relay run, in order."""

    SPAWNING = "spawning"
    HEADER_EXCHANGE = "header_exchange"
    ARRAY_OPEN = "array_open"
    FIRST_ELEMENT = "first_element"
    STEADY_STATE = "steady_state"
    CLOSED = "closed"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        """Return True once no further step can run."""
        return self in {RelayState.CLOSED, RelayState.ABORTED}


class ExitCode(IntEnum):
    """Process exit codes of the `statusrelay` command."""

    SUCCESS = 0  # generator closed its output
    FAILURE = 1  # fatal error, already logged
    USAGE_ERROR = 2  # invalid command line
    INTERRUPTED = 130
