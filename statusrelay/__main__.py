"""Allow running as `python -m statusrelay`."""

from .command import main

main()
