from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING
from xml.etree.ElementTree import Element, ElementTree, SubElement

from flow.record import RecordWriter

from dissect.jumplist.exceptions import ExportError
from dissect.jumplist.normalize import FIELD_NAMES, record_values

if TYPE_CHECKING:
    from collections.abc import Iterable

    from dissect.jumplist.normalize import JumpListShortcutRecord
    from dissect.jumplist.runner import BatchResult, ProcessedFile

log = logging.getLogger(__name__)

XHTML_NAMESPACE = "http://www.w3.org/1999/xhtml"


@dataclass
class ExportOptions:
    """Where to write the results of a run, every sink is optional."""

    csv: Path | None = None
    xml: Path | None = None
    html: Path | None = None
    json: Path | None = None
    pretty: bool = False
    dump_to: Path | None = None
    record_uri: str | None = None


def output_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")


def export_csv(records: Iterable[JumpListShortcutRecord], path: Path) -> bool:
    """Write records as tab separated values, with the field names as header."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = path.open("w", encoding="utf-8", newline="")
    except OSError as e:
        log.error("Unable to open %s for writing, skipping CSV export: %s", path, e)  # noqa: TRY400
        log.debug("", exc_info=e)
        return False

    try:
        with fh:
            writer = csv.DictWriter(fh, fieldnames=FIELD_NAMES, delimiter="\t", lineterminator="\n")
            writer.writeheader()
            for record in records:
                writer.writerow({key: "" if value is None else value for key, value in record_values(record).items()})
    except OSError as e:
        log.error("Error writing CSV output to %s: %s", path, e)  # noqa: TRY400
        log.debug("", exc_info=e)
        return False

    log.info("CSV output written to %s", path)
    return True


def export_json(processed: Iterable[ProcessedFile], directory: Path, pretty: bool = False) -> list[Path]:
    """Write one JSON document per Jump List, holding its metadata and records."""
    directory = Path(directory)
    timestamp = output_timestamp()
    written = []

    for item in processed:
        path = directory.joinpath(f"{timestamp}_{item.jumplist.name}.json")
        document = item.jumplist.metadata()
        document["records"] = [record_values(record) for record in item.records]

        try:
            directory.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8") as fh:
                json.dump(document, fh, indent=4 if pretty else None)
        except OSError as e:
            log.error("Error exporting JSON for %s: %s", item.jumplist.path, e)  # noqa: TRY400
            log.debug("", exc_info=e)
            continue

        written.append(path)

    return written


def _records_element(tag: str, records: Iterable[JumpListShortcutRecord]) -> Element:
    root = Element(tag)
    for record in records:
        element = SubElement(root, "record")
        for key, value in record_values(record).items():
            SubElement(element, key).text = "" if value is None else str(value)
    return root


def export_xml(processed: Iterable[ProcessedFile], directory: Path) -> list[Path]:
    """Write one XML document per Jump List, with a ``record`` element per record."""
    directory = Path(directory)
    timestamp = output_timestamp()
    written = []

    for item in processed:
        path = directory.joinpath(f"{timestamp}_{item.jumplist.name}.xml")
        tree = ElementTree(_records_element("records", item.records))

        try:
            directory.mkdir(parents=True, exist_ok=True)
            tree.write(path, encoding="utf-8", xml_declaration=True)
        except OSError as e:
            log.error("Error exporting XML for %s: %s", item.jumplist.path, e)  # noqa: TRY400
            log.debug("", exc_info=e)
            continue

        written.append(path)

    return written


def export_xhtml(processed: Iterable[ProcessedFile], directory: Path) -> Path | None:
    """Write the records of all Jump Lists to a single aggregated XHTML document."""
    output_dir = Path(directory).joinpath(f"{output_timestamp()}_jumplist_output")
    path = output_dir.joinpath("index.xhtml")

    root = Element("document", {"xmlns": XHTML_NAMESPACE})
    for item in processed:
        element = _records_element("jumplist", item.records)
        element.set("source_file", str(item.jumplist.path))
        element.set("application_id", item.jumplist.application_id)
        element.set("type", item.jumplist.type)
        root.append(element)

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        ElementTree(root).write(path, encoding="utf-8", xml_declaration=True)
    except OSError as e:
        log.error("Error exporting XHTML to %s: %s", path, e)  # noqa: TRY400
        log.debug("", exc_info=e)
        return None

    return path


def export_records(records: Iterable[JumpListShortcutRecord], uri: str) -> int:
    """Write records to any ``flow.record`` writer URI, e.g. ``jsonfile://out.json`` or ``out.rec``.

    Returns the number of records written.
    """
    try:
        writer = RecordWriter(uri)
    except Exception as e:
        raise ExportError(f"Unable to open record writer: {uri}", cause=e)

    count = 0
    try:
        for record in records:
            writer.write(record)
            count += 1
    finally:
        writer.close()

    return count


def dump_shortcuts(processed: Iterable[ProcessedFile], directory: Path) -> list[Path]:
    """Write the raw bytes of every embedded shortcut to its own ``.lnk`` file.

    Shortcuts are written to ``<directory>/<jump list name>/<application id>_<label>.lnk``, where the label is the
    entry number for automatic destinations and ``<rank>_<index>`` for custom destinations.
    """
    written = []
    for item in processed:
        jumplist = item.jumplist
        output_dir = Path(directory).joinpath(jumplist.name)

        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            log.error("Unable to create %s, skipping shortcuts of %s: %s", output_dir, jumplist.path, e)  # noqa: TRY400
            log.debug("", exc_info=e)
            continue

        for label, shortcut in jumplist.shortcuts():
            path = output_dir.joinpath(f"{jumplist.application_id}_{label}.lnk")
            try:
                path.write_bytes(shortcut.data)
            except OSError as e:
                log.error("Error dumping shortcut %s of %s: %s", label, jumplist.path, e)  # noqa: TRY400
                log.debug("", exc_info=e)
                continue

            written.append(path)

    return written


def export(result: BatchResult, options: ExportOptions) -> None:
    """Run every sink configured in ``options``, a failing sink does not stop the others."""
    if options.csv:
        export_csv(result.records, options.csv)

    if options.json:
        export_json(result.processed, options.json, options.pretty)

    if options.xml:
        export_xml(result.processed, options.xml)

    if options.html:
        export_xhtml(result.processed, options.html)

    if options.record_uri:
        try:
            export_records(result.records, options.record_uri)
        except ExportError as e:
            log.error(e)  # noqa: TRY400
            log.debug("", exc_info=e)

    if options.dump_to:
        dump_shortcuts(result.processed, options.dump_to)
