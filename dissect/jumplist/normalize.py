from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from dissect.util import ts
from flow.record import RecordDescriptor

from dissect.jumplist.helpers.utils import render_timestamp
from dissect.jumplist.helpers.vendors import resolve_vendor
from dissect.jumplist.lnk import DRIVE_TYPE_DESCRIPTIONS, DriveType, ExtraBlockKind, flag_names
from dissect.jumplist.shellitem import ExtensionKind

if TYPE_CHECKING:
    from collections.abc import Iterator

    from dissect.jumplist.jumplist import JumpListFile
    from dissect.jumplist.lnk import ShortcutRecord
    from dissect.jumplist.shellitem import SHITEM

NO_VOLUME = "(None)"

FIELDS = [
    ("string", "source_file"),
    ("string", "source_created"),
    ("string", "source_modified"),
    ("string", "source_accessed"),
    ("string", "target_created"),
    ("string", "target_modified"),
    ("string", "target_accessed"),
    ("varint", "file_size"),
    ("string", "relative_path"),
    ("string", "working_directory"),
    ("string", "file_attributes"),
    ("string", "header_flags"),
    ("string", "drive_type"),
    ("string", "drive_serial_number"),
    ("string", "drive_label"),
    ("string", "local_path"),
    ("string", "common_path"),
    ("string", "target_id_absolute_path"),
    ("string", "target_mft_entry_number"),
    ("string", "target_mft_sequence_number"),
    ("string", "machine_id"),
    ("string", "machine_mac_address"),
    ("string", "mac_vendor"),
    ("string", "tracker_created_on"),
    ("string", "extra_blocks_present"),
]

FIELD_NAMES = [name for _, name in FIELDS]

JumpListShortcutRecord = RecordDescriptor("windows/jumplist/shortcut", FIELDS)


@dataclass
class SourceContext:
    """The Jump List file a shortcut was read from, with its file system timestamps."""

    path: Path
    created: datetime | None
    modified: datetime | None
    accessed: datetime | None

    @classmethod
    def from_path(cls, path: Path | str) -> SourceContext:
        path = Path(path)
        stat = path.stat()
        # st_birthtime only exists on some platforms, st_ctime is the closest match elsewhere
        created = getattr(stat, "st_birthtime", stat.st_ctime)

        return cls(
            path=path,
            created=ts.from_unix(created),
            modified=ts.from_unix(stat.st_mtime),
            accessed=ts.from_unix(stat.st_atime),
        )


def absolute_path(target_ids: list[SHITEM]) -> str:
    """Join the display names of a target ID list into a single path.

    A volume is displayed as ``C:\\``, its trailing separator is dropped so every node is separated by exactly one
    backslash.
    """
    return "\\".join(item.name.rstrip("\\") for item in target_ids)


def mft_reference(target_ids: list[SHITEM]) -> tuple[str | None, str | None]:
    """Return the MFT entry and sequence number of the target, as ``0x`` prefixed hexadecimal strings.

    Only the last extension block of the last shell item is consulted, and only when it is a long name extension.
    """
    if not target_ids or not target_ids[-1].extensions:
        return None, None

    extension = target_ids[-1].extensions[-1]
    if extension.kind != ExtensionKind.LONG_NAME:
        return None, None

    entry = f"0x{extension.mft_entry:X}" if extension.mft_entry is not None else None
    sequence = f"0x{extension.mft_sequence:X}" if extension.mft_sequence is not None else None
    return entry, sequence


def render_drive_type(value: int) -> str:
    try:
        drive_type = DriveType(value)
    except ValueError:
        return str(value)
    return DRIVE_TYPE_DESCRIPTIONS.get(drive_type, drive_type.name)


def normalize(shortcut: ShortcutRecord, source: SourceContext) -> JumpListShortcutRecord:
    """Flatten a decoded shortcut into a :data:`JumpListShortcutRecord`."""
    values = {
        "source_file": str(source.path),
        "source_created": render_timestamp(source.created),
        "source_modified": render_timestamp(source.modified),
        "source_accessed": render_timestamp(source.accessed),
        "target_created": render_timestamp(shortcut.creation_time),
        "target_modified": render_timestamp(shortcut.modification_time),
        "target_accessed": render_timestamp(shortcut.access_time),
        "file_size": shortcut.file_size,
        "relative_path": shortcut.relative_path,
        "working_directory": shortcut.working_directory,
        "file_attributes": flag_names(shortcut.file_attributes),
        "header_flags": flag_names(shortcut.link_flags),
        "local_path": shortcut.local_path,
        "common_path": shortcut.common_path,
        "drive_type": NO_VOLUME,
        "extra_blocks_present": ", ".join(block.type_name for block in shortcut.extra_blocks),
        "target_id_absolute_path": "",
    }

    if volume := shortcut.volume:
        values["drive_type"] = render_drive_type(volume.drive_type)
        values["drive_serial_number"] = f"{volume.serial_number:08X}"
        values["drive_label"] = volume.label

    if tracker := shortcut.extra_block(ExtraBlockKind.TRACKER):
        values["tracker_created_on"] = render_timestamp(tracker.creation_time)
        values["machine_id"] = tracker.machine_id
        values["machine_mac_address"] = tracker.mac_address
        values["mac_vendor"] = resolve_vendor(tracker.mac_address)

    if shortcut.target_ids:
        values["target_id_absolute_path"] = absolute_path(shortcut.target_ids)
        values["target_mft_entry_number"], values["target_mft_sequence_number"] = mft_reference(shortcut.target_ids)

    return JumpListShortcutRecord(**values)


def normalize_jumplist(jumplist: JumpListFile) -> Iterator[JumpListShortcutRecord]:
    """Yield one record per shortcut of a Jump List, in entry order."""
    source = SourceContext.from_path(jumplist.path)
    for _, shortcut in jumplist.shortcuts():
        yield normalize(shortcut, source)


def record_values(record: JumpListShortcutRecord) -> dict:
    """Return the field values of a record in field order."""
    return {name: getattr(record, name) for name in FIELD_NAMES}
