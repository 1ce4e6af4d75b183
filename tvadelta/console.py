"""Console status output.

Everything goes to stderr so that stdout stays free for anything a caller
wants to pipe.
"""

import sys

# ANSI color codes for TTY output
IS_TTY = sys.stderr.isatty()
RED = "\033[91m" if IS_TTY else ""
GREEN = "\033[92m" if IS_TTY else ""
YELLOW = "\033[93m" if IS_TTY else ""
BOLD = "\033[1m" if IS_TTY else ""
RESET = "\033[0m" if IS_TTY else ""


def log(msg: str = "") -> None:
    """Print a status message and flush immediately."""
    print(msg, file=sys.stderr, flush=True)


def warn(msg: str) -> None:
    """Print a warning."""
    log(f"{YELLOW}Warning:{RESET} {msg}")


def error(msg: str) -> None:
    """Print an error."""
    log(f"{RED}Error:{RESET} {msg}")
