from __future__ import annotations

import io
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum, IntFlag
from typing import TYPE_CHECKING

from dissect.shellitem.lnk import Lnk
from dissect.shellitem.lnk.c_lnk import LINK_EXTRA_DATA_HEADER_SIZE, LINK_HEADER_SIZE, c_lnk

from dissect.jumplist.exceptions import DecodeError, InvalidSignatureError
from dissect.jumplist.helpers.utils import droid_mac_address, droid_timestamp, optional_wintimestamp
from dissect.jumplist.shellitem import parse_shell_item_list

if TYPE_CHECKING:
    from collections.abc import Iterator

    from dissect.jumplist.shellitem import SHITEM

log = logging.getLogger(__name__)

LNK_CLSID = b"\x01\x14\x02\x00\x00\x00\x00\x00\xc0\x00\x00\x00\x00\x00\x00\x46"
DEFAULT_CODEPAGE = "cp1252"

# Offset of the VolumeID data buffer, behind the size, drive type, serial number and label offset
VOLUME_ID_DATA_OFFSET = 0x10
VOLUME_LABEL_OFFSET_UNICODE = 0x14


class LinkFlag(IntFlag):
    HAS_TARGET_ID_LIST = 0x00000001
    HAS_LINK_INFO = 0x00000002
    HAS_NAME = 0x00000004
    HAS_RELATIVE_PATH = 0x00000008
    HAS_WORKING_DIR = 0x00000010
    HAS_ARGUMENTS = 0x00000020
    HAS_ICON_LOCATION = 0x00000040
    IS_UNICODE = 0x00000080
    FORCE_NO_LINK_INFO = 0x00000100
    HAS_EXP_STRING = 0x00000200
    RUN_IN_SEPARATE_PROCESS = 0x00000400
    UNUSED1 = 0x00000800
    HAS_DARWIN_ID = 0x00001000
    RUN_AS_USER = 0x00002000
    HAS_EXP_ICON = 0x00004000
    NO_PIDL_ALIAS = 0x00008000
    UNUSED2 = 0x00010000
    RUN_WITH_SHIM_LAYER = 0x00020000
    FORCE_NO_LINK_TRACK = 0x00040000
    ENABLE_TARGET_METADATA = 0x00080000
    DISABLE_LINK_PATH_TRACKING = 0x00100000
    DISABLE_KNOWN_FOLDER_TRACKING = 0x00200000
    DISABLE_KNOWN_FOLDER_ALIAS = 0x00400000
    ALLOW_LINK_TO_LINK = 0x00800000
    UNALIAS_ON_SAVE = 0x01000000
    PREFER_ENVIRONMENT_PATH = 0x02000000
    KEEP_LOCAL_ID_LIST_FOR_UNC_TARGET = 0x04000000


class FileAttribute(IntFlag):
    READONLY = 0x0001
    HIDDEN = 0x0002
    SYSTEM = 0x0004
    RESERVED1 = 0x0008
    DIRECTORY = 0x0010
    ARCHIVE = 0x0020
    RESERVED2 = 0x0040
    NORMAL = 0x0080
    TEMPORARY = 0x0100
    SPARSE_FILE = 0x0200
    REPARSE_POINT = 0x0400
    COMPRESSED = 0x0800
    OFFLINE = 0x1000
    NOT_CONTENT_INDEXED = 0x2000
    ENCRYPTED = 0x4000


class DriveType(IntEnum):
    DRIVE_UNKNOWN = 0
    DRIVE_NO_ROOT_DIR = 1
    DRIVE_REMOVABLE = 2
    DRIVE_FIXED = 3
    DRIVE_REMOTE = 4
    DRIVE_CDROM = 5
    DRIVE_RAMDISK = 6


DRIVE_TYPE_DESCRIPTIONS = {
    DriveType.DRIVE_UNKNOWN: "The drive type cannot be determined",
    DriveType.DRIVE_NO_ROOT_DIR: "The root path is invalid; for example, there is no volume mounted at the path",
    DriveType.DRIVE_REMOVABLE: (
        "The drive has removable media, such as a floppy drive, thumb drive, or flash card reader"
    ),
    DriveType.DRIVE_FIXED: "The drive has fixed media, such as a hard drive or flash drive",
    DriveType.DRIVE_REMOTE: "The drive is a remote (network) drive",
    DriveType.DRIVE_CDROM: "The drive is a CD-ROM drive",
    DriveType.DRIVE_RAMDISK: "The drive is a RAM disk",
}


class ExtraBlockKind(IntEnum):
    """Shortcut extra data blocks, keyed by their block signature."""

    UNKNOWN = 0
    ENVIRONMENT_VARIABLE = 0xA0000001
    CONSOLE = 0xA0000002
    TRACKER = 0xA0000003
    CONSOLE_FE = 0xA0000004
    SPECIAL_FOLDER = 0xA0000005
    DARWIN = 0xA0000006
    ICON_ENVIRONMENT = 0xA0000007
    SHIM = 0xA0000008
    PROPERTY_STORE = 0xA0000009
    KNOWN_FOLDER = 0xA000000B
    VISTA_AND_ABOVE_IDLIST = 0xA000000C

    @classmethod
    def from_signature(cls, signature: int) -> ExtraBlockKind:
        try:
            return cls(signature)
        except ValueError:
            return cls.UNKNOWN

    @property
    def type_name(self) -> str:
        return EXTRA_BLOCK_NAMES[self]


EXTRA_BLOCK_NAMES = {
    ExtraBlockKind.UNKNOWN: "UnknownDataBlock",
    ExtraBlockKind.ENVIRONMENT_VARIABLE: "EnvironmentVariableDataBlock",
    ExtraBlockKind.CONSOLE: "ConsoleDataBlock",
    ExtraBlockKind.TRACKER: "TrackerDataBlock",
    ExtraBlockKind.CONSOLE_FE: "ConsoleFEDataBlock",
    ExtraBlockKind.SPECIAL_FOLDER: "SpecialFolderDataBlock",
    ExtraBlockKind.DARWIN: "DarwinDataBlock",
    ExtraBlockKind.ICON_ENVIRONMENT: "IconEnvironmentDataBlock",
    ExtraBlockKind.SHIM: "ShimDataBlock",
    ExtraBlockKind.PROPERTY_STORE: "PropertyStoreDataBlock",
    ExtraBlockKind.KNOWN_FOLDER: "KnownFolderDataBlock",
    ExtraBlockKind.VISTA_AND_ABOVE_IDLIST: "VistaAndAboveIDListDataBlock",
}


def flag_names(value: IntFlag) -> str:
    """Render the set members of a flag value as a comma separated list of names."""
    return ", ".join(member.name for member in type(value) if member in value)


@dataclass
class VolumeInfo:
    drive_type: int
    serial_number: int
    label: str | None


class ExtraDataBlock:
    def __init__(self, buf: bytes):
        self.buf = buf
        self.size = c_lnk.uint32(buf[0:4])
        self.signature = c_lnk.uint32(buf[4:8])
        self.kind = ExtraBlockKind.from_signature(self.signature)

    @property
    def type_name(self) -> str:
        return self.kind.type_name

    def __repr__(self) -> str:
        return f"<{self.type_name} size=0x{self.size:x} signature=0x{self.signature:08x}>"


class TrackerDataBlock(ExtraDataBlock):
    """Distributed link tracker information.

    The creation time and MAC address are taken from the file droid, a version 1 UUID.
    """

    def __init__(self, buf: bytes):
        super().__init__(buf)
        self.tracker = c_lnk.TRACKER_PROPS(buf[LINK_EXTRA_DATA_HEADER_SIZE:])
        self.machine_id = self.tracker.machine_id.split(b"\x00")[0].decode(errors="backslashreplace")
        self.volume_droid = uuid.UUID(bytes_le=self.tracker.volume_droid)
        self.file_droid = uuid.UUID(bytes_le=self.tracker.file_droid)
        self.birth_volume_droid = uuid.UUID(bytes_le=self.tracker.volume_droid_birth)
        self.birth_file_droid = uuid.UUID(bytes_le=self.tracker.file_droid_birth)

    @property
    def mac_address(self) -> str:
        return droid_mac_address(self.file_droid)

    @property
    def creation_time(self) -> datetime | None:
        return droid_timestamp(self.file_droid)


@dataclass
class ShortcutRecord:
    data: bytes
    creation_time: datetime | None
    modification_time: datetime | None
    access_time: datetime | None
    file_size: int
    file_attributes: FileAttribute
    link_flags: LinkFlag
    working_directory: str | None = None
    relative_path: str | None = None
    local_path: str | None = None
    common_path: str | None = None
    volume: VolumeInfo | None = None
    target_ids: list[SHITEM] = field(default_factory=list)
    extra_blocks: list[ExtraDataBlock] = field(default_factory=list)

    def extra_block(self, kind: ExtraBlockKind) -> ExtraDataBlock | None:
        for block in self.extra_blocks:
            if block.kind == kind:
                return block
        return None


def parse_shortcut(buf: bytes, codepage: str = DEFAULT_CODEPAGE) -> ShortcutRecord:
    """Decode a shortcut (LNK) from its raw bytes.

    The header, string data and link info are read through :class:`dissect.shellitem.lnk.Lnk`. The shell items of the
    target ID list are decoded by :func:`parse_shell_item_list`, and the extra data blocks are listed in file order by
    :func:`parse_extra_blocks`.
    """
    buf = bytes(buf)
    if len(buf) < LINK_HEADER_SIZE:
        raise DecodeError(f"Shortcut data too short: {len(buf)} bytes")

    fh = io.BytesIO(buf)
    lnk = Lnk(fh)
    if not lnk.link_header:
        raise InvalidSignatureError("Invalid shortcut header")

    header = lnk.link_header
    record = ShortcutRecord(
        data=buf,
        creation_time=optional_wintimestamp(header.creation_time),
        modification_time=optional_wintimestamp(header.write_time),
        access_time=optional_wintimestamp(header.access_time),
        file_size=header.filesize,
        file_attributes=FileAttribute(int(header.file_flags)),
        link_flags=LinkFlag(int(header.link_flags)),
    )

    if lnk.flag("has_relative_path"):
        record.relative_path = lnk.stringdata.relative_path.string
    if lnk.flag("has_working_dir"):
        record.working_directory = lnk.stringdata.working_dir.string

    if lnk.flag("has_link_info"):
        if lnk.linkinfo.flag("volumeid_and_local_basepath"):
            if lnk.linkinfo.local_base_path:
                record.local_path = lnk.linkinfo.local_base_path.decode(codepage, errors="backslashreplace")
            if lnk.linkinfo.volumeid is not None:
                record.volume = parse_volume_id(lnk.linkinfo.volumeid, codepage)
        if lnk.linkinfo.common_path_suffix:
            record.common_path = lnk.linkinfo.common_path_suffix.decode(codepage, errors="backslashreplace")

    if lnk.flag("has_link_target_idlist"):
        # The ID list size excludes its own two byte size field
        start = LINK_HEADER_SIZE + 2
        record.target_ids = list(parse_shell_item_list(buf[start : start + lnk.target_idlist.size]))

    # Lnk keys its extra data by block name, so the blocks are listed from the raw bytes to keep their order
    record.extra_blocks = list(parse_extra_blocks(buf[_extra_data_offset(lnk) :]))
    return record


def _extra_data_offset(lnk: Lnk) -> int:
    offset = LINK_HEADER_SIZE

    if lnk.flag("has_link_target_idlist"):
        offset += 2 + lnk.target_idlist.size

    if lnk.flag("has_link_info"):
        offset += lnk.linkinfo.link_info_size

    if lnk.stringdata.string_data:
        # character_count is already in bytes for unicode strings
        offset += sum(2 + value.character_count for value in lnk.stringdata.string_data.values())

    return offset


def parse_volume_id(volume_id: c_lnk.VOLUME_ID, codepage: str = DEFAULT_CODEPAGE) -> VolumeInfo:
    """Read the drive type, serial number and label from a ``VOLUME_ID`` structure."""
    label = None
    data = volume_id.data

    if volume_id.volume_label_offset == VOLUME_LABEL_OFFSET_UNICODE:
        unicode_offset = c_lnk.uint32(data[0:4])
        label = c_lnk.wchar[None](io.BytesIO(data[unicode_offset - VOLUME_ID_DATA_OFFSET :]))
    elif volume_id.volume_label_offset:
        label = c_lnk.char[None](io.BytesIO(data[volume_id.volume_label_offset - VOLUME_ID_DATA_OFFSET :]))
        label = label.decode(codepage, errors="backslashreplace")

    return VolumeInfo(
        drive_type=volume_id.drive_type,
        serial_number=volume_id.drive_serial_number,
        label=label,
    )


def parse_extra_blocks(buf: bytes) -> Iterator[ExtraDataBlock]:
    """Parse the extra data blocks trailing a shortcut, up to the terminal block."""
    offset = 0
    end = len(buf)
    while offset + 4 <= end:
        size = c_lnk.uint32(buf[offset : offset + 4])

        # TerminalBlock
        if size < 4:
            break

        if size < LINK_EXTRA_DATA_HEADER_SIZE or offset + size > end:
            log.debug("Extra data block at offset 0x%x with size 0x%x exceeds the shortcut", offset, size)
            break

        block_buf = buf[offset : offset + size]
        kind = ExtraBlockKind.from_signature(c_lnk.uint32(block_buf[4:8]))

        if kind == ExtraBlockKind.TRACKER:
            yield TrackerDataBlock(block_buf)
        else:
            yield ExtraDataBlock(block_buf)

        offset += size
