#!/usr/bin/env python3
"""
pkstream - Streaming ZIP extractor CLI
"""
import argparse
import logging
import sys
from pathlib import Path

from pkstream.base import ExtractionResult, ExtractionStatus, NotAnArchiveError
from pkstream.config import get_config
from pkstream.extractors.zip_extractor import ZipExtractor
from pkstream.headers import METHOD_DEFLATE, METHOD_STORE
from pkstream.orchestrator import Orchestrator

_METHOD_NAMES = {METHOD_STORE: 'store', METHOD_DEFLATE: 'deflate'}


def format_result(result: ExtractionResult) -> str:
    """
    Format an extraction result as a short report.

    Args:
        result: Result returned by the extractor

    Returns:
        Multi-line summary string
    """
    lines = []

    if result.status == ExtractionStatus.FAILED:
        lines.append("Not a zip archive: nothing extracted")
    elif result.status == ExtractionStatus.PARTIAL:
        lines.append(f"Extracted {result.count} entries with {len(result.failures)} failure(s)")
    else:
        lines.append(f"Extracted {result.count} entries")

    for failure in result.failures:
        label = failure.name or f"offset {failure.offset}"
        lines.append(f"  {failure.reason.value:<22} {label}: {failure.message}")

    return "\n".join(lines)


def extract_command(args):
    """Handle extract command."""
    archive = Path(args.archive)
    if not archive.exists():
        print(f"Error: Archive {archive} does not exist")
        return 1

    result = Orchestrator().install_file(archive, Path(args.destination), replace=args.replace)
    print(format_result(result))
    return 0 if result.ok else 1


def fetch_command(args):
    """Handle fetch command."""
    print(f"Fetching {args.url}...")
    try:
        result = Orchestrator().install_url(args.url, Path(args.destination), replace=args.replace)
    except NotAnArchiveError as e:
        print(f"Error: {e}")
        return 1
    print(format_result(result))
    return 0 if result.ok else 1


def list_command(args):
    """Handle list command."""
    archive = Path(args.archive)
    if not archive.exists():
        print(f"Error: Archive {archive} does not exist")
        return 1

    entries = ZipExtractor().list_entries(archive.read_bytes())

    print(f"\n{'Offset':<10} {'Method':<10} {'Size':>10} {'Stream':<7} Name")
    print("-" * 70)
    for entry in entries:
        header = entry.header
        method = _METHOD_NAMES.get(header.compression_method, str(header.compression_method))
        streaming = 'yes' if header.has_data_descriptor else 'no'
        name = entry.name if entry.name is not None else '<undecodable>'
        print(f"{header.offset:<10} {method:<10} {header.uncompressed_size:>10} {streaming:<7} {name}")

    print(f"\n{len(entries)} entries")
    return 0


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="pkstream - extract zip archives from their local file headers"
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Extract command
    extract_parser = subparsers.add_parser('extract', help='Extract a local archive')
    extract_parser.add_argument('archive', help='Path to the .zip file')
    extract_parser.add_argument('destination', help='Directory to extract into')
    extract_parser.add_argument('--replace', action='store_true', default=None,
                                help='Remove the destination directory first')

    # Fetch command
    fetch_parser = subparsers.add_parser('fetch', help='Download and extract an archive')
    fetch_parser.add_argument('url', help='Archive URL')
    fetch_parser.add_argument('destination', help='Directory to extract into')
    fetch_parser.add_argument('--replace', action='store_true', default=None,
                              help='Remove the destination directory first')

    # List command
    list_parser = subparsers.add_parser('list', help='List the entries of an archive')
    list_parser.add_argument('archive', help='Path to the .zip file')

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    config = get_config()
    logging.basicConfig(level=config.log_level,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    if args.command == 'extract':
        return extract_command(args)
    elif args.command == 'fetch':
        return fetch_command(args)
    elif args.command == 'list':
        return list_command(args)

    return 0


if __name__ == '__main__':
    sys.exit(main())
