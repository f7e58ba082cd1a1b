from __future__ import annotations

import io
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, Callable

from dissect.cstruct import cstruct
from dissect.ole import OLE

from dissect.jumplist.exceptions import InvalidFooterError, InvalidSignatureError, UnsupportedVersionError
from dissect.jumplist.helpers.application_ids import describe_application
from dissect.jumplist.helpers.logging import SourceLogAdapter
from dissect.jumplist.helpers.utils import (
    droid_mac_address,
    droid_timestamp,
    findall,
    optional_wintimestamp,
    render_timestamp,
)
from dissect.jumplist.lnk import LNK_CLSID, ShortcutRecord, parse_shortcut

if TYPE_CHECKING:
    from collections.abc import Iterator

log = logging.getLogger(__name__)

# Little endian D0 CF 11 E0 A1 B1 1A E1, the OLE compound file magic
OLE_SIGNATURE = 0xE11AB1A1E011CFD0

# An embedded shortcut starts with its header size, followed by the class identifier
LNK_HEADER_SIZE = b"\x4c\x00\x00\x00"

destlist_def = """
struct DESTLIST_HEADER {
    uint32  version;
    uint32  number_of_entries;
    uint32  number_of_pinned_entries;
    uint32  unknown1;
    uint32  last_entry_number;
    uint32  unknown2;
    uint32  last_revision_number;
    uint32  unknown3;
};

struct DESTLIST_ENTRY_V1 {
    uint64  checksum;
    char    volume_droid[16];
    char    file_droid[16];
    char    birth_volume_droid[16];
    char    birth_file_droid[16];
    char    hostname[16];
    uint32  entry_number;
    uint32  unknown1;
    uint32  unknown2;
    uint64  last_modification_time;
    int32   pin_status;
    uint16  path_size;
    wchar   path[path_size];
};

struct DESTLIST_ENTRY_V2 {
    uint64  checksum;
    char    volume_droid[16];
    char    file_droid[16];
    char    birth_volume_droid[16];
    char    birth_file_droid[16];
    char    hostname[16];
    uint32  entry_number;
    uint32  unknown1;
    uint32  unknown2;
    uint64  last_modification_time;
    int32   pin_status;
    uint32  unknown3;
    uint32  access_count;
    uint64  unknown4;
    uint16  path_size;
    wchar   path[path_size];
    uint32  unknown5;
};
"""
c_destlist = cstruct()
c_destlist.load(destlist_def)

custom_destination_def = """
#define FOOTER_MAGIC    0xBABFFBAB

struct header {
    uint32  version;
    uint32  number_of_categories;
    uint32  unknown1;
};

struct category_header {
    uint32  category_type;
};

struct category_custom {
    uint16  name_length;
    wchar   name[name_length];
    uint32  number_of_entries;
};

struct category_known {
    int32   category_id;
};
"""
c_custom_destination = cstruct()
c_custom_destination.load(custom_destination_def)

FOOTER = c_custom_destination.FOOTER_MAGIC.to_bytes(4, "little")

KNOWN_CATEGORY_NAMES = {
    1: "Frequent",
    2: "Recent",
}


class CategoryType(IntEnum):
    CUSTOM = 0
    KNOWN = 1
    TASKS = 2


class DestinationType(Enum):
    AUTOMATIC = "automaticDestinations"
    CUSTOM = "customDestinations"


def classify(path: Path | str) -> DestinationType:
    """Classify a Jump List file by its first eight bytes.

    Files starting with the OLE compound file signature hold automatic destinations, any other file is treated as a
    custom destination.
    """
    with Path(path).open("rb") as fh:
        buf = fh.read(8)

    if len(buf) < 8:
        raise InvalidSignatureError(f"File too short to hold a signature: {len(buf)} bytes")

    if int.from_bytes(buf, "little") == OLE_SIGNATURE:
        return DestinationType.AUTOMATIC
    return DestinationType.CUSTOM


@dataclass
class DestListEntry:
    entry_number: int
    path: str | None = None
    created: datetime | None = None
    last_modified: datetime | None = None
    hostname: str | None = None
    mac_address: str | None = None
    pinned: bool = False
    access_count: int | None = None
    shortcut: ShortcutRecord | None = None

    @property
    def stream_name(self) -> str:
        return format(self.entry_number, "x")


@dataclass
class CustomDestinationEntry:
    rank: int
    name: str | None
    shortcuts: list[ShortcutRecord] = field(default_factory=list)


class JumpListFile:
    TYPE = None

    def __init__(self, fh: BinaryIO, path: Path | str):
        self.fh = fh
        self.path = Path(path)
        self.log = SourceLogAdapter(log, {"source": self.path})

        self.application_id = self.path.name.split(".")[0]
        self.application_description = describe_application(self.application_id)

    @property
    def name(self) -> str:
        """Return the file name of the Jump List."""
        return self.path.name

    @property
    def type(self) -> str:
        """Return the type of the Jump List file."""
        return self.TYPE.value

    def shortcuts(self) -> Iterator[tuple[str, ShortcutRecord]]:
        """Yield ``(label, shortcut)`` pairs in record order."""
        raise NotImplementedError

    def metadata(self) -> dict:
        """Return a JSON serializable summary of the Jump List."""
        return {
            "source_file": str(self.path),
            "application_id": self.application_id,
            "application_description": self.application_description,
            "type": self.type,
        }

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} path={str(self.path)!r}>"


class AutomaticDestinationFile(JumpListFile):
    """Parse a Jump List AutomaticDestinations file.

    The OLE compound file holds a ``DestList`` stream and one shortcut stream per entry, named after the hexadecimal
    entry number.

    References:
        - https://github.com/libyal/dtformats/blob/main/documentation/Jump%20lists%20format.asciidoc
    """

    TYPE = DestinationType.AUTOMATIC

    def __init__(self, fh: BinaryIO, path: Path | str):
        super().__init__(fh, path)
        self.ole = OLE(self.fh)
        self.streams = list(self.ole.root.listdir())

        self.destlist_version = None
        self.expected_entries = None
        self.entries = []

        if "DestList" in self.streams:
            self._parse_destlist(self._read_stream("DestList"))
        else:
            self.log.debug("No DestList stream, falling back to numeric streams")
            numbers = sorted(int(name, 16) for name in self.streams if _is_hex(name))
            self.entries = [DestListEntry(entry_number=number) for number in numbers]

        for entry in self.entries:
            entry.shortcut = self._decode_entry(entry)

    def _read_stream(self, name: str) -> bytes:
        return self.ole.get(name).open().read()

    def _parse_destlist(self, buf: bytes) -> None:
        # An empty Jump List has an empty DestList stream
        if not buf:
            self.expected_entries = 0
            return

        fh = io.BytesIO(buf)
        header = c_destlist.DESTLIST_HEADER(fh)
        self.destlist_version = header.version
        self.expected_entries = header.number_of_entries

        entry_struct = c_destlist.DESTLIST_ENTRY_V1 if header.version == 1 else c_destlist.DESTLIST_ENTRY_V2

        while fh.tell() < len(buf):
            entry = entry_struct(fh)
            file_droid = uuid.UUID(bytes_le=entry.file_droid)

            self.entries.append(
                DestListEntry(
                    entry_number=entry.entry_number,
                    path=entry.path,
                    created=droid_timestamp(file_droid),
                    last_modified=optional_wintimestamp(entry.last_modification_time),
                    hostname=entry.hostname.split(b"\x00")[0].decode(errors="backslashreplace"),
                    mac_address=droid_mac_address(file_droid),
                    pinned=entry.pin_status != -1,
                    access_count=entry.access_count if header.version >= 3 else None,
                )
            )

        if len(self.entries) != self.expected_entries:
            self.log.debug("DestList holds %d entries, header announced %d", len(self.entries), self.expected_entries)

    def _decode_entry(self, entry: DestListEntry) -> ShortcutRecord | None:
        if entry.stream_name not in self.streams:
            self.log.warning("Missing shortcut stream %s", entry.stream_name)
            return None

        try:
            return parse_shortcut(self._read_stream(entry.stream_name))
        except Exception as e:
            self.log.warning("Failed to parse shortcut stream %s", entry.stream_name)
            self.log.debug("", exc_info=e)
            return None

    def shortcuts(self) -> Iterator[tuple[str, ShortcutRecord]]:
        for entry in self.entries:
            if entry.shortcut is not None:
                yield entry.stream_name, entry.shortcut

    def metadata(self) -> dict:
        metadata = super().metadata()
        metadata["destlist_version"] = self.destlist_version
        metadata["expected_entries"] = self.expected_entries
        metadata["entries"] = [
            {
                "entry_number": entry.entry_number,
                "path": entry.path,
                "created": render_timestamp(entry.created),
                "last_modified": render_timestamp(entry.last_modified),
                "hostname": entry.hostname,
                "mac_address": entry.mac_address,
                "pinned": entry.pinned,
                "access_count": entry.access_count,
                "has_shortcut": entry.shortcut is not None,
            }
            for entry in self.entries
        ]
        return metadata


class CustomDestinationFile(JumpListFile):
    """Parse a Jump List CustomDestinations file.

    The file is a sequence of categories, each terminated by a footer. Every category bundles one or more shortcuts,
    each preceded by the shortcut class identifier.
    """

    TYPE = DestinationType.CUSTOM
    VERSIONS = (2,)

    def __init__(self, fh: BinaryIO, path: Path | str):
        super().__init__(fh, path)
        buf = self.fh.read()

        if buf[-4:] != FOOTER:
            raise InvalidFooterError(f"The CustomDestination file has an invalid magic footer: {buf[-4:].hex()}")

        self.header = c_custom_destination.header(buf)
        self.version = self.header.version

        if self.version not in self.VERSIONS:
            raise UnsupportedVersionError(f"The CustomDestination file has an unsupported version: {self.version}")

        self.entries = []
        categories = buf[len(c_custom_destination.header) : -len(FOOTER)].split(FOOTER)
        for rank, category in enumerate(categories):
            entry = self._parse_category(rank, category)
            if entry.shortcuts:
                self.entries.append(entry)

        if len(categories) != self.header.number_of_categories:
            self.log.debug(
                "File holds %d categories, header announced %d", len(categories), self.header.number_of_categories
            )

    def _parse_category(self, rank: int, buf: bytes) -> CustomDestinationEntry:
        name = None
        category_type = c_custom_destination.category_header(buf).category_type
        offset = len(c_custom_destination.category_header)

        if category_type == CategoryType.CUSTOM:
            name = c_custom_destination.category_custom(buf[offset:]).name
        elif category_type == CategoryType.KNOWN:
            category_id = c_custom_destination.category_known(buf[offset:]).category_id
            name = KNOWN_CATEGORY_NAMES.get(category_id)

        entry = CustomDestinationEntry(rank=rank, name=name)

        # The category entry counts are not always correct, so search for the shortcut class identifier instead
        offsets = [
            offset
            for offset in findall(buf, LNK_CLSID)
            if buf[offset + len(LNK_CLSID) : offset + len(LNK_CLSID) + 4] == LNK_HEADER_SIZE
        ]
        for start, end in zip(offsets, offsets[1:] + [len(buf)]):
            try:
                entry.shortcuts.append(parse_shortcut(buf[start + len(LNK_CLSID) : end]))
            except Exception as e:
                self.log.warning("Failed to parse shortcut in category %d", rank)
                self.log.debug("", exc_info=e)

        return entry

    def shortcuts(self) -> Iterator[tuple[str, ShortcutRecord]]:
        for entry in self.entries:
            for index, shortcut in enumerate(entry.shortcuts):
                yield f"{entry.rank}_{index}", shortcut

    def metadata(self) -> dict:
        metadata = super().metadata()
        metadata["version"] = self.version
        metadata["entries"] = [
            {"rank": entry.rank, "name": entry.name, "shortcuts": len(entry.shortcuts)} for entry in self.entries
        ]
        return metadata


def _is_hex(name: str) -> bool:
    try:
        int(name, 16)
    except ValueError:
        return False
    return True


def decode_automatic_destination(path: Path | str) -> AutomaticDestinationFile:
    """Decode an AutomaticDestinations Jump List."""
    with Path(path).open("rb") as fh:
        return AutomaticDestinationFile(fh, path)


def decode_custom_destination(path: Path | str) -> CustomDestinationFile:
    """Decode a CustomDestinations Jump List."""
    with Path(path).open("rb") as fh:
        return CustomDestinationFile(fh, path)


DECODERS: dict[DestinationType, Callable[[Path | str], JumpListFile]] = {
    DestinationType.AUTOMATIC: decode_automatic_destination,
    DestinationType.CUSTOM: decode_custom_destination,
}
