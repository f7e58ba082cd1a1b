from __future__ import annotations

import argparse
import errno
import os
import sys
from functools import wraps
from importlib.metadata import PackageNotFoundError, version
from typing import Callable

from dissect.jumplist.tools.logging import configure_logging


def configure_generic_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-v", "--verbose", action="count", default=0, help="increase output verbosity")
    parser.add_argument("--version", action="store_true", help="print version")
    parser.add_argument("-q", "--quiet", action="store_true", help="only show the summary, no progress or logging")


def process_generic_arguments(args: argparse.Namespace) -> None:
    configure_logging(args.verbose, args.quiet)

    if args.version:
        try:
            print("dissect.jumplist version " + version("dissect.jumplist"))
        except PackageNotFoundError:
            print("unable to determine version")
        sys.exit(0)


def catch_sigpipe(func: Callable) -> Callable:
    """Catches ``KeyboardInterrupt`` and ``BrokenPipeError`` (``OSError 22`` on Windows)."""

    @wraps(func)
    def wrapper(*args, **kwargs) -> int:
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            print("Aborted!", file=sys.stderr)
            return 1
        except OSError as e:
            # Only catch BrokenPipeError or OSError 22
            if e.errno in (errno.EPIPE, errno.EINVAL):
                devnull = os.open(os.devnull, os.O_WRONLY)
                os.dup2(devnull, sys.stdout.fileno())
                return 1
            raise

    return wrapper
