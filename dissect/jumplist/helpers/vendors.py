from __future__ import annotations

import re
from pathlib import Path

from dissect.jumplist.exceptions import ConfigurationError
from dissect.jumplist.helpers.utils import get_resource_string

UNKNOWN_VENDOR = "(Unknown vendor)"

# Matches both ``00-14-22<TAB>Dell Inc.`` and the IEEE ``00-14-22   (hex)<TAB><TAB>Dell Inc.`` lines
VENDOR_LINE = re.compile(
    r"^(?P<prefix>[0-9A-Fa-f]{2}-[0-9A-Fa-f]{2}-[0-9A-Fa-f]{2})\s+(?:\(hex\)\s+)?(?P<vendor>\S.*)$"
)


def parse_vendor_table(content: str) -> dict[str, str]:
    """Parse an OUI table into a prefix to vendor mapping.

    Understands the bundled ``AA-BB-CC<TAB>Vendor`` format and the registry file published by the IEEE (``oui.txt``).
    Comments, empty lines and any other line are ignored.
    """
    table = {}
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if match := VENDOR_LINE.match(line):
            table[match.group("prefix").upper()] = match.group("vendor").strip()

    return table


MAC_VENDORS = parse_vendor_table(get_resource_string("data/macs.txt"))


def load_vendor_table(path: Path | str) -> int:
    """Add the vendors of an OUI table on disk to :data:`MAC_VENDORS`, e.g. a current IEEE ``oui.txt``.

    Entries from the file take precedence over the bundled ones. Returns the number of prefixes read.
    """
    try:
        content = Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise ConfigurationError(f"Unable to read vendor table: {path}", cause=e)

    table = parse_vendor_table(content)
    MAC_VENDORS.update(table)
    return len(table)


def mac_prefix(mac_address: str) -> str:
    """Return the first three octets of a MAC address in ``AA-BB-CC`` notation."""
    octets = mac_address.replace("-", ":").split(":")
    return "-".join(octets[:3]).upper()


def resolve_vendor(mac_address: str | None) -> str:
    """Resolve the vendor of a MAC address, e.g. ``00:14:22:0d:94:04`` to ``Dell Inc.``."""
    if not mac_address:
        return UNKNOWN_VENDOR
    return MAC_VENDORS.get(mac_prefix(mac_address), UNKNOWN_VENDOR)
