"""statusrelay - run a status line generator with click events enabled (cli entry point)."""

import argparse
import asyncio
import os
import sys

import aiofiles.os

from .config import GeneratorConfig
from .config_loader import ConfigLoader
from .constants import DEFAULT_COMMAND
from .logging_setup import get_logger, init_logger
from .models import ExitCode, RelayError, RelayState, StreamIOFailure
from .relay import Relay

__all__ = ["discard_stdout", "main", "parse_args", "run_relay"]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse the command line."""
    parser = argparse.ArgumentParser(
        prog="statusrelay",
        description="Relay an i3bar protocol status generator, advertising click events support.",
    )
    parser.add_argument("-c", "--config", dest="config_file", metavar="PATH", help="configuration file passed to the generator")
    parser.add_argument("--command", metavar="CMD", help=f"generator command line (default: {DEFAULT_COMMAND})")
    parser.add_argument("--relay-config", metavar="PATH", default="", help="statusrelay TOML configuration file")
    parser.add_argument("--debug", metavar="FILE", help="enable debug logs, also written to FILE")
    return parser.parse_args(argv)


async def run_relay(args: argparse.Namespace) -> RelayState:
    """Load the configuration and relay until the generator stops."""
    log = get_logger()
    conf = await ConfigLoader(log).load(args.relay_config)
    config = GeneratorConfig.from_config(conf, command=args.command, config_file=args.config_file)

    if config.config_path and not await aiofiles.os.path.exists(config.config_path):
        log.warning("Generator config file %s does not exist", config.config_path)

    relay = Relay(config, log=log)
    return await relay.run()


def discard_stdout() -> None:
    """Point stdout at /dev/null once the bar has gone away.

    Bytes left in the stdout buffer would fail again when the interpreter flushes it at exit.
    """
    devnull = os.open(os.devnull, os.O_WRONLY)
    os.dup2(devnull, sys.stdout.fileno())
    os.close(devnull)


def main(argv: list[str] | None = None) -> None:
    """Run the command."""
    args = parse_args(argv)
    if args.debug:
        init_logger(filename=args.debug, force_debug=True)
    else:
        init_logger()
    log = get_logger("startup")

    try:
        asyncio.run(run_relay(args))
    except KeyboardInterrupt:
        sys.exit(ExitCode.INTERRUPTED)
    except RelayError as e:
        if isinstance(e, StreamIOFailure) and isinstance(e.__cause__, BrokenPipeError):
            discard_stdout()
        log.critical("%s: %s", type(e).__name__, e)
        sys.exit(ExitCode.FAILURE)
    except Exception:  # noqa: BLE001  # pylint: disable=broad-exception-caught
        log.critical("Unhandled exception:", exc_info=True)
        sys.exit(ExitCode.FAILURE)
    sys.exit(ExitCode.SUCCESS)


if __name__ == "__main__":
    main()
