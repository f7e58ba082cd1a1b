#!/usr/bin/env python
from __future__ import annotations

import argparse
from pathlib import Path

import structlog

from dissect.jumplist.exceptions import ConfigurationError, FatalError
from dissect.jumplist.export import ExportOptions, export
from dissect.jumplist.helpers.application_ids import load_application_table
from dissect.jumplist.helpers.vendors import load_vendor_table
from dissect.jumplist.jumplist import AutomaticDestinationFile
from dissect.jumplist.runner import BatchResult, ProcessedFile, run
from dissect.jumplist.tools.utils import (
    catch_sigpipe,
    configure_generic_arguments,
    process_generic_arguments,
)

log = structlog.get_logger(__name__)


def print_progress(path: Path) -> None:
    print(f"Processing {path}")


def describe(item: ProcessedFile) -> str:
    jumplist = item.jumplist
    description = jumplist.application_description or "Unknown application"
    line = f"{jumplist.name}: {jumplist.application_id} ({description}), {len(item.records)} shortcut(s)"

    if isinstance(jumplist, AutomaticDestinationFile):
        line += f", DestList version {jumplist.destlist_version}"
        line += f", {len(jumplist.entries)} of {jumplist.expected_entries} entries"
    else:
        line += f", {len(jumplist.entries)} categories"

    return line


def print_summary(result: BatchResult, overview: bool = True) -> None:
    if overview and result.processed:
        print()
        for item in result.processed:
            print(describe(item))

    print()
    print(f"Processed {len(result.processed)} out of {result.found} files in {result.elapsed:.4f} seconds")

    if result.failures:
        print()
        print("Failed files:")
        for failure in result.failures:
            print(f"  {failure.path}: {failure.reason}")


def load_tables(args: argparse.Namespace) -> None:
    if args.vendors:
        count = load_vendor_table(args.vendors)
        log.info("Loaded vendor table", path=args.vendors, count=count)

    if args.appids:
        count = load_application_table(args.appids)
        log.info("Loaded application identifier table", path=args.appids, count=count)


def export_options(args: argparse.Namespace) -> ExportOptions:
    return ExportOptions(
        csv=args.csv,
        xml=args.xml,
        html=args.html,
        json=args.json,
        pretty=args.pretty,
        dump_to=args.dump_to,
        record_uri=args.write,
    )


@catch_sigpipe
def main() -> int:
    help_formatter = argparse.ArgumentDefaultsHelpFormatter
    parser = argparse.ArgumentParser(
        description="Parse Windows Jump Lists (automaticDestinations-ms and customDestinations-ms files).",
        fromfile_prefix_chars="@",
        formatter_class=help_formatter,
    )

    selector = parser.add_mutually_exclusive_group()
    selector.add_argument("-f", "--file", type=Path, help="Jump List file to process")
    selector.add_argument("-d", "--directory", type=Path, help="directory to recursively search for Jump List files")

    parser.add_argument(
        "--all",
        dest="all_files",
        action="store_true",
        help="process all files in the directory, not only *.*destinations-ms",
    )
    parser.add_argument("--csv", type=Path, help="write the records to this tab separated file")
    parser.add_argument("--xml", type=Path, help="directory to write one XML file per Jump List to")
    parser.add_argument("--html", type=Path, help="directory to write an aggregated XHTML document to")
    parser.add_argument("--json", type=Path, help="directory to write one JSON file per Jump List to")
    parser.add_argument("--pretty", action="store_true", help="indent the JSON output")
    parser.add_argument("--dumpTo", dest="dump_to", type=Path, help="directory to dump the embedded shortcuts to")
    parser.add_argument("-w", "--write", metavar="URI", help="write the records to a flow.record writer URI")
    parser.add_argument(
        "--vendors",
        type=Path,
        metavar="FILE",
        help="additional MAC address vendor table, e.g. the IEEE oui.txt, taking precedence over the bundled one",
    )
    parser.add_argument(
        "--appids",
        type=Path,
        metavar="FILE",
        help="additional application identifier table with <application id><TAB><description> lines",
    )

    configure_generic_arguments(parser)

    args = parser.parse_args()
    process_generic_arguments(args)

    path = args.file or args.directory
    if path is None:
        parser.print_help()
        log.error("Either -f or -d is required")
        return 1

    if args.file and not args.file.is_file():
        log.error("File not found", path=args.file)
        return 1

    if args.directory and not args.directory.is_dir():
        log.error("Directory not found", path=args.directory)
        return 1

    try:
        load_tables(args)
    except ConfigurationError as e:
        log.error("Unable to load lookup table", error=str(e))
        log.debug("", exc_info=e)
        return 1

    try:
        result = run(path, all_files=args.all_files, progress=None if args.quiet else print_progress)
    except FatalError as e:
        log.error("Unable to process Jump Lists", path=path, error=str(e))
        log.debug("", exc_info=e)
        return 1

    print_summary(result, overview=not args.quiet)
    export(result, export_options(args))

    return 0


if __name__ == "__main__":
    main()
