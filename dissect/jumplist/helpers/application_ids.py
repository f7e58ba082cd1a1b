from __future__ import annotations

import re
from pathlib import Path

from dissect.jumplist.exceptions import ConfigurationError
from dissect.jumplist.helpers.utils import get_resource_string

APPLICATION_ID_LINE = re.compile(r"^(?P<appid>[0-9A-Fa-f]{1,16})\s+(?P<description>\S.*)$")


def parse_application_table(content: str) -> dict[str, str]:
    """Parse ``<application id><TAB><description>`` lines, keyed on the lower-cased identifier."""
    table = {}
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if match := APPLICATION_ID_LINE.match(line):
            table[match.group("appid").lower()] = match.group("description").strip()

    return table


APPLICATION_IDENTIFIERS = parse_application_table(get_resource_string("data/application_ids.txt"))


def load_application_table(path: Path | str) -> int:
    """Add the descriptions of an application identifier table on disk to :data:`APPLICATION_IDENTIFIERS`.

    Returns the number of identifiers read.
    """
    try:
        content = Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise ConfigurationError(f"Unable to read application identifier table: {path}", cause=e)

    table = parse_application_table(content)
    APPLICATION_IDENTIFIERS.update(table)
    return len(table)


def describe_application(application_id: str) -> str | None:
    return APPLICATION_IDENTIFIERS.get(application_id.lower())
