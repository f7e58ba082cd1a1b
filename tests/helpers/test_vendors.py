from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from dissect.jumplist.exceptions import ConfigurationError
from dissect.jumplist.helpers.vendors import (
    MAC_VENDORS,
    UNKNOWN_VENDOR,
    load_vendor_table,
    mac_prefix,
    parse_vendor_table,
    resolve_vendor,
)

if TYPE_CHECKING:
    from pathlib import Path

IEEE_OUI_TXT = """OUI/MA-L                                                    Organization
company_id                                                  Organization
                                                            Address

00-14-22   (hex)\t\tDell Inc.
001422     (base 16)\t\tDell Inc.
\t\t\t\tOne Dell Way, MS:RR5-45
\t\t\t\tRound Rock  78682
\t\t\t\tUS

AC-DE-48   (hex)\t\tPrivate
ACDE48     (base 16)\t\tPrivate

FC-FF-FF   (hex)\t\tExample Networks, Inc.
FCFFFF     (base 16)\t\tExample Networks, Inc.
\t\t\t\t1 Example Road
\t\t\t\tNL
"""


def test_parse_vendor_table() -> None:
    content = "# comment\n\n00-14-22\tDell Inc.\n  ac-de-48\t Private \nmalformed line\n"

    assert parse_vendor_table(content) == {"00-14-22": "Dell Inc.", "AC-DE-48": "Private"}


def test_parse_vendor_table_ieee() -> None:
    assert parse_vendor_table(IEEE_OUI_TXT) == {
        "00-14-22": "Dell Inc.",
        "AC-DE-48": "Private",
        "FC-FF-FF": "Example Networks, Inc.",
    }


@pytest.mark.parametrize(
    ("prefix", "vendor"),
    [
        ("00-14-22", "Dell Inc."),
        ("00-0C-29", "VMware, Inc."),
        ("00-15-5D", "Microsoft Corporation"),
        ("08-00-27", "PCS Systemtechnik GmbH"),
        ("3C-D9-2B", "Hewlett Packard"),
    ],
)
def test_bundled_vendor_table(prefix: str, vendor: str) -> None:
    assert MAC_VENDORS[prefix] == vendor


def test_load_vendor_table(tmp_path: Path) -> None:
    path = tmp_path.joinpath("oui.txt")
    path.write_text(IEEE_OUI_TXT, encoding="utf-8")

    with patch.dict(MAC_VENDORS):
        assert resolve_vendor("fc:ff:ff:00:00:01") == UNKNOWN_VENDOR
        assert load_vendor_table(path) == 3
        assert resolve_vendor("fc:ff:ff:00:00:01") == "Example Networks, Inc."
        assert resolve_vendor("00:14:22:0d:94:04") == "Dell Inc."

    assert resolve_vendor("fc:ff:ff:00:00:01") == UNKNOWN_VENDOR


def test_load_vendor_table_missing(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="Unable to read vendor table"):
        load_vendor_table(tmp_path.joinpath("missing.txt"))


@pytest.mark.parametrize(
    ("mac_address", "expected"),
    [
        ("00:14:22:0d:94:04", "00-14-22"),
        ("00-14-22-0D-94-04", "00-14-22"),
        ("ac:de:48:00:11:22", "AC-DE-48"),
    ],
)
def test_mac_prefix(mac_address: str, expected: str) -> None:
    assert mac_prefix(mac_address) == expected


@pytest.mark.parametrize(
    ("mac_address", "expected"),
    [
        ("00:14:22:0d:94:04", "Dell Inc."),
        ("00:14:22:0D:94:04", "Dell Inc."),
        ("00-14-22-0d-94-04", "Dell Inc."),
        ("fe:ff:ff:00:00:01", UNKNOWN_VENDOR),
        ("garbage", UNKNOWN_VENDOR),
        ("", UNKNOWN_VENDOR),
        (None, UNKNOWN_VENDOR),
    ],
)
def test_resolve_vendor(mac_address: str | None, expected: str) -> None:
    assert resolve_vendor(mac_address) == expected
