from __future__ import annotations

import fnmatch
import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from dissect.jumplist.exceptions import ConfigurationError, FatalError
from dissect.jumplist.jumplist import DECODERS, DestinationType, JumpListFile, classify
from dissect.jumplist.normalize import JumpListShortcutRecord, normalize_jumplist

if TYPE_CHECKING:
    from collections.abc import Iterator

log = logging.getLogger(__name__)

FILE_MASK = "*.*destinations-ms"


@dataclass
class Failure:
    path: Path
    reason: str


@dataclass
class ProcessedFile:
    jumplist: JumpListFile
    records: list[JumpListShortcutRecord]


@dataclass
class BatchResult:
    found: int = 0
    processed: list[ProcessedFile] = field(default_factory=list)
    failures: list[Failure] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def records(self) -> list[JumpListShortcutRecord]:
        return [record for processed in self.processed for record in processed.records]


def matches_mask(path: Path) -> bool:
    return fnmatch.fnmatch(path.name.lower(), FILE_MASK)


def _walk(root: Path, recursive: bool, failures: list[Failure]) -> Iterator[Path]:
    def onerror(e: OSError) -> None:
        log.warning("Unable to list directory %s", e.filename)
        log.debug("", exc_info=e)
        failures.append(Failure(Path(e.filename), str(e)))

    for dirpath, dirnames, filenames in os.walk(root, onerror=onerror):
        for filename in filenames:
            yield Path(dirpath).joinpath(filename)

        if not recursive:
            dirnames.clear()


def find_candidates(path: Path, recursive: bool = True, all_files: bool = False) -> tuple[list[Path], list[Failure]]:
    """Find the Jump List files to process below ``path``.

    Returns the sorted candidates and the failures of subdirectories that could not be listed.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Path does not exist: {path}")

    if path.is_file():
        return [path], []

    try:
        os.listdir(path)
    except OSError as e:
        raise FatalError(f"Unable to list directory: {path}", cause=e)

    failures = []
    candidates = [
        candidate for candidate in _walk(path, recursive, failures) if all_files or matches_mask(candidate)
    ]
    return sorted(candidates), failures


def process_file(
    path: Path,
    decoders: dict[DestinationType, Callable[[Path], JumpListFile]] = DECODERS,
) -> ProcessedFile:
    """Classify, decode and normalize a single Jump List file."""
    destination_type = classify(path)
    jumplist = decoders[destination_type](path)
    return ProcessedFile(jumplist, list(normalize_jumplist(jumplist)))


def run(
    path: Path | str,
    recursive: bool = True,
    all_files: bool = False,
    progress: Callable[[Path], None] | None = None,
    decoders: dict[DestinationType, Callable[[Path], JumpListFile]] = DECODERS,
) -> BatchResult:
    """Process a Jump List file or every Jump List file in a directory.

    A file that fails to decode is recorded as a failure and does not stop the batch. Only a missing input path or an
    unreadable top-level directory raise.
    """
    start = time.perf_counter()
    candidates, failures = find_candidates(Path(path), recursive, all_files)

    result = BatchResult(found=len(candidates) + len(failures), failures=failures)

    for candidate in candidates:
        if progress:
            progress(candidate)

        try:
            result.processed.append(process_file(candidate, decoders))
        except Exception as e:
            log.error("Failed to process %s: %s", candidate, e)  # noqa: TRY400
            log.debug("", exc_info=e)
            result.failures.append(Failure(candidate, str(e) or e.__class__.__name__))

    result.elapsed = time.perf_counter() - start
    return result
