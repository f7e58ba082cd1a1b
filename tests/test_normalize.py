from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace

import pytest

from dissect.jumplist.lnk import parse_shortcut
from dissect.jumplist.normalize import (
    FIELD_NAMES,
    NO_VOLUME,
    SourceContext,
    absolute_path,
    mft_reference,
    normalize,
    record_values,
    render_drive_type,
)
from dissect.jumplist.shellitem import ExtensionKind, parse_shell_item_list
from tests._utils import (
    FILE_REFERENCE,
    TRACKER_CREATED,
    extra_block,
    file_entry_item,
    id_list,
    lnk,
    root_folder_item,
    tracker_block,
    volume_item,
)

SOURCE = SourceContext(
    path=Path("C:/Users/John/AppData/Roaming/5f7b5f1e01b83767.automaticDestinations-ms"),
    created=datetime(2023, 5, 1, 8, 0, 0, tzinfo=timezone.utc),
    modified=datetime(2023, 5, 2, 8, 0, 0, tzinfo=timezone.utc),
    accessed=None,
)


def test_normalize(shortcut_bytes: bytes) -> None:
    shortcut = parse_shortcut(shortcut_bytes)
    record = normalize(shortcut, SOURCE)

    assert record.source_file == str(SOURCE.path)
    assert record.source_created == "2023-05-01T08:00:00+00:00"
    assert record.source_modified == "2023-05-02T08:00:00+00:00"
    assert record.source_accessed == ""
    assert record.target_created == shortcut.creation_time.isoformat()
    assert record.target_modified == shortcut.modification_time.isoformat()
    assert record.target_accessed == shortcut.access_time.isoformat()
    assert record.file_size == 12345

    assert record.relative_path == "..\\Documents\\report.docx"
    assert record.working_directory == "C:\\Users\\John\\Documents"
    assert record.file_attributes == "ARCHIVE"
    assert record.header_flags == "HAS_TARGET_ID_LIST, HAS_LINK_INFO, HAS_RELATIVE_PATH, HAS_WORKING_DIR, IS_UNICODE"

    assert record.drive_type == "The drive has fixed media, such as a hard drive or flash drive"
    assert record.drive_serial_number == "1234ABCD"
    assert record.drive_label == "Windows"
    assert record.local_path == "C:\\Users\\John\\Documents\\report.docx"
    assert record.common_path is None

    assert record.target_id_absolute_path == "My Computer\\C:\\Users\\John\\Documents\\report.docx"
    assert record.target_mft_entry_number == "0x1A2B"
    assert record.target_mft_sequence_number == "0x3"

    assert record.machine_id == "desktop-01"
    assert record.machine_mac_address == "00:14:22:0d:94:04"
    assert record.mac_vendor == "Dell Inc."
    assert record.tracker_created_on == TRACKER_CREATED.isoformat()
    assert record.extra_blocks_present == "TrackerDataBlock"


def test_normalize_minimal(minimal_shortcut_bytes: bytes) -> None:
    record = normalize(parse_shortcut(minimal_shortcut_bytes), SOURCE)

    assert record.target_created == ""
    assert record.target_modified == ""
    assert record.target_accessed == ""
    assert record.drive_type == NO_VOLUME
    assert record.drive_serial_number is None
    assert record.drive_label is None
    assert record.target_id_absolute_path == ""
    assert record.target_mft_entry_number is None
    assert record.target_mft_sequence_number is None
    assert record.machine_id is None
    assert record.mac_vendor is None
    assert record.tracker_created_on is None
    assert record.extra_blocks_present == ""


def test_normalize_extra_blocks_present() -> None:
    buf = lnk(extra_blocks=extra_block(0xA0000005) + tracker_block())
    record = normalize(parse_shortcut(buf), SOURCE)

    assert record.extra_blocks_present == "SpecialFolderDataBlock, TrackerDataBlock"
    # An all zero file droid carries neither a timestamp nor a known vendor
    assert record.tracker_created_on == ""
    assert record.machine_mac_address == "00:00:00:00:00:00"
    assert record.mac_vendor == "XEROX CORPORATION"


def test_absolute_path_separators() -> None:
    names = ["Users", "John", "Documents", "report.docx"]
    target_ids = list(parse_shell_item_list(id_list(*(file_entry_item(name) for name in names))))
    path = absolute_path(target_ids)

    assert path == "Users\\John\\Documents\\report.docx"
    assert path.count("\\") == len(names) - 1
    assert absolute_path([]) == ""


def test_absolute_path_through_volume() -> None:
    items = [root_folder_item(), volume_item("C:\\"), file_entry_item("Users")]
    target_ids = list(parse_shell_item_list(id_list(*items)))
    path = absolute_path(target_ids)

    assert [item.name for item in target_ids] == ["My Computer", "C:\\", "Users"]
    assert path == "My Computer\\C:\\Users"
    assert path.count("\\") == len(items) - 1


@pytest.mark.parametrize(
    ("items", "expected"),
    [
        pytest.param([], (None, None), id="no-items"),
        pytest.param([file_entry_item("John")], (None, None), id="no-extensions"),
        pytest.param([file_entry_item("John", extra_extension=True)], (None, None), id="other-extension"),
        pytest.param(
            [file_entry_item("REPORT~1.DOC", "report.docx", FILE_REFERENCE)],
            ("0x1A2B", "0x3"),
            id="long-name",
        ),
        pytest.param(
            [file_entry_item("DOCUME~1", "Documents", (0x1 << 48) | 0x21, extra_extension=True)],
            (None, None),
            id="long-name-followed-by-other-extension",
        ),
        pytest.param(
            [file_entry_item("REPORT~1.DOC", "report.docx", FILE_REFERENCE), file_entry_item("John")],
            (None, None),
            id="only-last-item",
        ),
        pytest.param([file_entry_item("ROOT", "root", 0)], ("0x0", "0x0"), id="zero-reference"),
    ],
)
def test_mft_reference(items: list[bytes], expected: tuple[str | None, str | None]) -> None:
    target_ids = list(parse_shell_item_list(id_list(*items)))

    assert mft_reference(target_ids) == expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (0, "The drive type cannot be determined"),
        (2, "The drive has removable media, such as a floppy drive, thumb drive, or flash card reader"),
        (4, "The drive is a remote (network) drive"),
        (42, "42"),
    ],
)
def test_render_drive_type(value: int, expected: str) -> None:
    assert render_drive_type(value) == expected


def test_source_context_from_path(tmp_path: Path) -> None:
    path = tmp_path.joinpath("file.customDestinations-ms")
    path.write_bytes(b"\x00" * 8)

    source = SourceContext.from_path(path)

    assert source.path == path
    assert source.created.tzinfo is not None
    assert source.modified.tzinfo is not None
    assert source.accessed.tzinfo is not None


def test_record_values(minimal_shortcut_bytes: bytes) -> None:
    values = record_values(normalize(parse_shortcut(minimal_shortcut_bytes), SOURCE))

    assert list(values.keys()) == FIELD_NAMES
    assert values["source_file"] == str(SOURCE.path)


def test_mft_reference_rendered_independently() -> None:
    extension = SimpleNamespace(kind=ExtensionKind.LONG_NAME, mft_entry=0x10, mft_sequence=None)
    item = SimpleNamespace(extensions=[extension])

    assert mft_reference([item]) == ("0x10", None)

    extension.mft_entry, extension.mft_sequence = None, 0x2
    assert mft_reference([item]) == (None, "0x2")


def test_mft_reference_last_extension_only() -> None:
    long_name = SimpleNamespace(kind=ExtensionKind.LONG_NAME, mft_entry=0x10, mft_sequence=0x2)
    other = SimpleNamespace(kind=ExtensionKind.BEEF0026, mft_entry=None, mft_sequence=None)

    assert mft_reference([SimpleNamespace(extensions=[other, long_name])]) == ("0x10", "0x2")
    assert mft_reference([SimpleNamespace(extensions=[long_name, other])]) == (None, None)
