from __future__ import annotations

import io
import logging
import uuid
from datetime import datetime
from enum import IntEnum
from typing import TYPE_CHECKING

from dissect.cstruct import cstruct
from dissect.util.ts import dostimestamp

from dissect.jumplist.helpers import shell_folder_ids

if TYPE_CHECKING:
    from collections.abc import Iterator

log = logging.getLogger(__name__)

shellitem_def = """
enum ROOTFOLDER_ID : uint8 {
    INTERNET_EXPLORER   = 0x00,
    LIBRARIES           = 0x42,
    USERS               = 0x44,
    MY_DOCUMENTS        = 0x48,
    MY_COMPUTER         = 0x50,
    NETWORK             = 0x58,
    RECYCLE_BIN         = 0x60,
    INTERNET_EXPLORER_2 = 0x68,
    UNKNOWN             = 0x70,
    MY_GAMES            = 0x80
};

struct SHITEM_HEADER {
    uint16  size;
    uint8   type;
};

struct SHITEM_ROOT_FOLDER {
    uint16          size;
    uint8           type;
    ROOTFOLDER_ID   folder_id;
    char            guid[16];
};

struct SHITEM_FILE_ENTRY {
    uint16  size;
    uint8   type;
    uint8   unk0;
    uint32  file_size;
    uint32  modification_time;
    uint16  file_attribute_flags;
};

struct SHITEM_NETWORK {
    uint16  size;
    uint8   type;
    uint8   unk0;
    uint8   flags;
    char    location[];
};

struct SHITEM_URI {
    uint16  size;
    uint8   type;
    uint8   flags;
    uint16  data_size;
};

struct SHITEM_CONTROL_PANEL {
    uint16  size;
    uint8   type;
    uint8   unk0;
    char    unk1[10];
    char    guid[16];
};

struct SHITEM_CONTROL_PANEL_CATEGORY {
    uint16  size;
    uint8   type;
    uint8   unk0;
    uint32  signature;
    uint32  category;
};

struct SHITEM_DELEGATE {
    uint16  size;
    uint8   type;
    uint8   unk0;
    uint16  data_size;
    char    data[data_size - 2];
    char    delegate_identifier[16];
    char    shell_identifier[16];
};

struct EXTENSION_BLOCK_HEADER {
    uint16  size;
    uint16  version;
    uint32  signature;
};
"""
c_shellitem = cstruct()
c_shellitem.load(shellitem_def)

DELEGATE_ITEM_IDENTIFIER = b"\x74\x1a\x59\x5e\x96\xdf\xd3\x48\x8d\x67\x17\x33\xbc\xee\x28\xba"
CONTROL_PANEL_CATEGORY_SIGNATURE = 0x39DE2184


class ExtensionKind(IntEnum):
    """Shell item extension blocks, keyed by their signature."""

    UNKNOWN = 0
    BEEF0000 = 0xBEEF0000
    BEEF0001 = 0xBEEF0001
    BEEF0003 = 0xBEEF0003
    LONG_NAME = 0xBEEF0004
    SHELL_ITEMS = 0xBEEF0005
    BEEF0006 = 0xBEEF0006
    BEEF000A = 0xBEEF000A
    BEEF0013 = 0xBEEF0013
    BEEF0014 = 0xBEEF0014
    BEEF0019 = 0xBEEF0019
    BEEF0025 = 0xBEEF0025
    BEEF0026 = 0xBEEF0026

    @classmethod
    def from_signature(cls, signature: int) -> ExtensionKind:
        try:
            return cls(signature)
        except ValueError:
            return cls.UNKNOWN


def parse_shell_item_list(buf: bytes) -> Iterator[SHITEM]:
    """Parse a list of shell items, as found in the target ID list of a shortcut.

    The list is terminated by an item of size ``0`` or the end of the buffer.
    """
    offset = 0
    end = len(buf)
    list_buf = memoryview(buf)

    parent = None
    while offset + 2 <= end:
        size = c_shellitem.uint16(list_buf[offset : offset + 2])

        if size == 0:
            break

        if size < 3 or offset + size > end:
            log.debug("Shell item at offset 0x%x with size 0x%04x exceeds the list", offset, size)
            break

        item_buf = list_buf[offset : offset + size]

        entry = None
        if size >= 8 and c_shellitem.uint32(item_buf[4:8]) == CONTROL_PANEL_CATEGORY_SIGNATURE:
            entry = CONTROL_PANEL_CATEGORY

        if size >= 38 and not entry and item_buf[size - 32 : size - 16] == DELEGATE_ITEM_IDENTIFIER:
            entry = DELEGATE

        if not entry:
            class_type = item_buf[2]
            mask_type = class_type & 0x70

            if class_type == 0x1F:
                entry = ROOT_FOLDER
            elif mask_type == 0x20 and class_type in (0x23, 0x25, 0x29, 0x2A, 0x2E, 0x2F):
                entry = VOLUME
            elif mask_type == 0x30 and class_type in (0x30, 0x31, 0x32, 0x35, 0x36, 0xB1):
                entry = FILE_ENTRY
            elif mask_type == 0x40 and class_type in (0x41, 0x42, 0x46, 0x47, 0x4C, 0xC3):
                entry = NETWORK
            elif class_type == 0x61:
                entry = URI
            elif class_type == 0x71:
                entry = CONTROL_PANEL
            else:
                log.debug("No supported shell item found for size 0x%04x and type 0x%02x", size, class_type)
                entry = UNKNOWN

        entry = entry(item_buf.tobytes())
        entry.parent = parent
        entry.extensions = list(parse_extension_blocks(entry))

        parent = entry
        yield entry

        offset += size


def parse_extension_blocks(entry: SHITEM) -> Iterator[EXTENSION_BLOCK]:
    """Parse the ``0xBEEF....`` extension blocks of a shell item.

    The offset of the first extension block is stored in the last two bytes of the item.
    """
    buf = entry.buf
    size = len(buf)
    if size < 6:
        return

    extension_offset = c_shellitem.uint16(buf[-2:])
    if not 4 <= extension_offset < size - 2:
        return

    while extension_offset + 8 <= size - 2:
        extension_size = c_shellitem.uint16(buf[extension_offset : extension_offset + 2])

        if extension_size < 8:
            break

        if extension_size > size - extension_offset:
            log.debug(
                "Extension size exceeds item size: 0x%04x > 0x%04x - 0x%04x",
                extension_size,
                size,
                extension_offset,
            )
            break

        extension_buf = buf[extension_offset : extension_offset + extension_size]
        kind = ExtensionKind.from_signature(c_shellitem.uint32(extension_buf[4:8]))

        if kind == ExtensionKind.LONG_NAME:
            ext = EXTENSION_BLOCK_BEEF0004
        else:
            ext = EXTENSION_BLOCK
            log.debug("Unimplemented extension %s in item %r", kind.name, entry)

        yield ext(extension_buf)
        extension_offset += extension_size


class SHITEM:
    STRUCT = None

    def __init__(self, buf: bytes):
        self.buf = buf
        self.fh = io.BytesIO(buf)
        self.item = self.STRUCT(self.fh) if self.STRUCT is not None else c_shellitem.SHITEM_HEADER(self.fh)
        self.size = self.item.size
        self.type = self.item.type
        self.parent = None
        self.extensions = []

    @property
    def name(self) -> str:
        return f"<SHITEM 0x{self.size:x}>"

    @property
    def modification_time(self) -> datetime | None:
        return None

    def extension(self, kind: ExtensionKind) -> EXTENSION_BLOCK | None:
        for ext in self.extensions:
            if ext.kind == kind:
                return ext
        return None

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class UNKNOWN(SHITEM):
    @property
    def name(self) -> str:
        return f"<UNKNOWN size=0x{self.size:04x} type=0x{self.type:02x}>"


class ROOT_FOLDER(SHITEM):  # noqa
    STRUCT = c_shellitem.SHITEM_ROOT_FOLDER

    def __init__(self, buf: bytes):
        super().__init__(buf)
        self.guid = uuid.UUID(bytes_le=self.item.guid)

    @property
    def name(self) -> str:
        guid_name = shell_folder_ids.DESCRIPTIONS.get(str(self.guid))
        return guid_name or f"{{{self.item.folder_id.name}: {self.guid}}}"


class VOLUME(SHITEM):
    def __init__(self, buf: bytes):
        super().__init__(buf)
        self.volume_name = None
        self.identifier = None
        if self.type == 0x2E:
            if self.size >= 20:
                self.identifier = uuid.UUID(bytes_le=buf[4:20])
        else:
            self.volume_name = self.fh.read(20).split(b"\x00")[0].decode(errors="backslashreplace")
            if self.size >= 41:
                self.identifier = uuid.UUID(bytes_le=buf[25:41])

    @property
    def name(self) -> str:
        if self.volume_name:
            return self.volume_name
        if self.identifier:
            guid_name = shell_folder_ids.DESCRIPTIONS.get(str(self.identifier))
            return guid_name or f"{{{self.identifier}}}"
        return f"<VOLUME 0x{self.type:02x}>"


class FILE_ENTRY(SHITEM):  # noqa
    STRUCT = c_shellitem.SHITEM_FILE_ENTRY

    def __init__(self, buf: bytes):
        super().__init__(buf)

        if self.type & 0x4:  # FILE_ENTRY_FLAG_IS_UNICODE
            self.primary_name = c_shellitem.wchar[None](self.fh)
        else:
            self.primary_name = c_shellitem.char[None](self.fh).decode(errors="backslashreplace")

    @property
    def name(self) -> str:
        ext = self.extension(ExtensionKind.LONG_NAME)
        if ext and ext.long_name:
            return ext.long_name
        return self.primary_name

    @property
    def file_size(self) -> int:
        return self.item.file_size

    @property
    def modification_time(self) -> datetime | None:
        if self.item.modification_time > 0:
            return dostimestamp(self.item.modification_time, swap=True)
        return None


class NETWORK(SHITEM):
    STRUCT = c_shellitem.SHITEM_NETWORK

    def __init__(self, buf: bytes):
        super().__init__(buf)
        self.description = None
        self.comments = None

        if self.item.flags & 0x80:
            self.description = c_shellitem.char[None](self.fh).decode(errors="backslashreplace")

        if self.item.flags & 0x40:
            self.comments = c_shellitem.char[None](self.fh).decode(errors="backslashreplace")

    @property
    def name(self) -> str:
        return self.item.location.decode(errors="backslashreplace")


class URI(SHITEM):
    STRUCT = c_shellitem.SHITEM_URI

    def __init__(self, buf: bytes):
        super().__init__(buf)
        self.uri = None
        if 2 <= self.item.data_size < self.size - 6:
            self.fh.read(self.item.data_size - 2)
            if self.item.flags & 0x80:
                self.uri = c_shellitem.wchar[None](self.fh)
            else:
                self.uri = c_shellitem.char[None](self.fh).decode(errors="backslashreplace")

    @property
    def name(self) -> str:
        return self.uri or "<URI>"


class CONTROL_PANEL(SHITEM):  # noqa
    STRUCT = c_shellitem.SHITEM_CONTROL_PANEL

    def __init__(self, buf: bytes):
        super().__init__(buf)
        self.guid = uuid.UUID(bytes_le=self.item.guid)

    @property
    def name(self) -> str:
        guid_name = shell_folder_ids.DESCRIPTIONS.get(str(self.guid))
        return guid_name or f"<CONTROL_PANEL {self.guid}>"


class CONTROL_PANEL_CATEGORY(SHITEM):  # noqa
    STRUCT = c_shellitem.SHITEM_CONTROL_PANEL_CATEGORY
    CATEGORIES = {
        0: "All Control Panel Items",
        1: "Appearance and Personalization",
        2: "Hardware and Sound",
        3: "Network and Internet",
        4: "Sounds, Speech, and Audio Devices",
        5: "System and Security",
        6: "Clock, Language, and Region",
        7: "Ease of Access",
        8: "Programs",
        9: "User Accounts",
        10: "Security Center",
        11: "Mobile PC",
    }

    @property
    def name(self) -> str:
        return self.CATEGORIES.get(self.item.category) or f"<CONTROL_PANEL_CATEGORY {self.item.category}>"


class DELEGATE(SHITEM):
    STRUCT = c_shellitem.SHITEM_DELEGATE

    def __init__(self, buf: bytes):
        super().__init__(buf)
        self.delegate_identifier = uuid.UUID(bytes_le=self.item.delegate_identifier)
        self.shell_identifier = uuid.UUID(bytes_le=self.item.shell_identifier)

    @property
    def name(self) -> str:
        guid_name = shell_folder_ids.DESCRIPTIONS.get(str(self.shell_identifier))
        return guid_name or f"{{{self.shell_identifier}}}"


class EXTENSION_BLOCK:  # noqa
    def __init__(self, buf: bytes):
        self.buf = buf
        self.fh = io.BytesIO(buf)
        self.header = c_shellitem.EXTENSION_BLOCK_HEADER(self.fh)
        self.kind = ExtensionKind.from_signature(self.header.signature)

    @property
    def size(self) -> int:
        return self.header.size

    @property
    def version(self) -> int:
        return self.header.version

    @property
    def signature(self) -> int:
        return self.header.signature

    def __repr__(self) -> str:
        return f"<EXTENSION_BLOCK {self.kind.name} size=0x{self.size:04x} version={self.version}>"


class EXTENSION_BLOCK_BEEF0004(EXTENSION_BLOCK):  # noqa
    """File entry extension holding the long name and, from version 7, the NTFS file reference."""

    def __init__(self, buf: bytes):
        super().__init__(buf)
        fh = self.fh
        version = self.version
        self._creation_time = c_shellitem.uint32(fh)
        self._last_accessed = c_shellitem.uint32(fh)
        self.identifier = c_shellitem.uint16(fh)
        self.file_reference = None
        self.long_name = None
        self.localized_name = None
        long_len = 0
        # Every read advances fh, so the order of these checks follows the on-disk layout
        if version >= 7:
            c_shellitem.uint16(fh)
            self.file_reference = c_shellitem.uint64(fh)
            c_shellitem.uint64(fh)
        if version >= 3:
            long_len = c_shellitem.uint16(fh)
        if version >= 9:
            c_shellitem.uint32(fh)
        if version >= 8:
            c_shellitem.uint32(fh)
        if version >= 3:
            self.long_name = c_shellitem.wchar[None](fh)
        if 3 <= version < 7 and long_len > 0:
            self.localized_name = c_shellitem.char[None](fh).decode(errors="backslashreplace")
        if version >= 7 and long_len > 0:
            self.localized_name = c_shellitem.wchar[None](fh)

    @property
    def creation_time(self) -> datetime | None:
        return dostimestamp(self._creation_time, swap=True) if self._creation_time else None

    @property
    def last_accessed(self) -> datetime | None:
        return dostimestamp(self._last_accessed, swap=True) if self._last_accessed else None

    @property
    def mft_entry(self) -> int | None:
        if self.file_reference is None:
            return None
        return self.file_reference & 0xFFFFFFFFFFFF

    @property
    def mft_sequence(self) -> int | None:
        if self.file_reference is None:
            return None
        return self.file_reference >> 48
