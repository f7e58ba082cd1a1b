from __future__ import annotations

from typing import TYPE_CHECKING, Callable
from unittest.mock import patch

import pytest

from tests._utils import (
    FILE_REFERENCE,
    OLE_MAGIC,
    TARGET_ACCESSED,
    TARGET_CREATED,
    TARGET_MODIFIED,
    TRACKER_CREATED,
    TRACKER_NODE,
    MockOLE,
    droid,
    file_entry_item,
    id_list,
    link_info,
    lnk,
    root_folder_item,
    tracker_block,
    volume_item,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture
def shortcut_bytes() -> bytes:
    """A shortcut to ``C:\\Users\\John\\Documents\\report.docx`` with every decoded structure present."""
    return lnk(
        created=TARGET_CREATED,
        modified=TARGET_MODIFIED,
        accessed=TARGET_ACCESSED,
        file_size=12345,
        target_ids=id_list(
            root_folder_item(),
            volume_item("C:\\"),
            file_entry_item("Users", "Users", (0x1 << 48) | 0x21),
            file_entry_item("John"),
            file_entry_item("DOCUME~1", "Documents"),
            file_entry_item("REPORT~1.DOC", "report.docx", FILE_REFERENCE),
        ),
        info=link_info(),
        relative_path="..\\Documents\\report.docx",
        working_dir="C:\\Users\\John\\Documents",
        extra_blocks=tracker_block("desktop-01", droid(TRACKER_CREATED, TRACKER_NODE)),
    )


@pytest.fixture
def minimal_shortcut_bytes() -> bytes:
    """A shortcut with only a header, all timestamps unset."""
    return lnk()


@pytest.fixture
def mock_ole() -> Iterator[Callable[[dict[str, bytes]], MockOLE]]:
    """Serve the given streams to every automatic destination decoded in the test."""
    with patch("dissect.jumplist.jumplist.OLE") as mocked:

        def configure(streams: dict[str, bytes]) -> MockOLE:
            ole = MockOLE(streams)
            mocked.side_effect = ole
            return ole

        yield configure


@pytest.fixture
def automatic_path(tmp_path: Path) -> Path:
    """An on-disk file carrying the OLE signature, its streams are served by ``mock_ole``."""
    path = tmp_path.joinpath("5f7b5f1e01b83767.automaticDestinations-ms")
    path.write_bytes(OLE_MAGIC + b"\x00" * 504)
    return path
