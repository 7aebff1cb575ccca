#!/usr/bin/env python3
"""
Main entry point for the message viewer.

Provides a command-line interface for browsing and searching an export.
"""
from typing import List, Optional, Sequence
import argparse
import sys
import logging

from message_viewer.config import get_config
from message_viewer.etl.aggregator import Contact
from message_viewer.etl.pipeline import ETLResult, ExportFormatError, run_etl_from_file
from message_viewer.logger_config import setup_logging
from message_viewer.search.index import find_matches
from message_viewer.search.worker import SearchClient, SearchSession
from message_viewer.utils import Colors, format_message_count, format_message_time, get_contact_display_name
from message_viewer.visualization import plot_messages_per_contact

logger = logging.getLogger(__name__)


def print_section(title: str) -> None:
    """Print a formatted section title."""
    print(f"\n{Colors.BOLD}{Colors.HEADER}{'=' * 60}{Colors.ENDC}")
    print(f"{Colors.BOLD}{Colors.HEADER}{title}{Colors.ENDC}")
    print(f"{Colors.BOLD}{Colors.HEADER}{'=' * 60}{Colors.ENDC}\n")


def _parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Browse and search a message export (read-only).")
    parser.add_argument(
        "export",
        nargs="?",
        default=None,
        help="Path to the JSON export (defaults to $MESSAGE_VIEWER_EXPORT_PATH or ./export.json).",
    )
    parser.add_argument(
        "--search",
        default=None,
        help="Only show contacts whose conversation contains this text.",
    )
    parser.add_argument(
        "--interactive",
        action="store_true",
        help="Prompt for search queries until an empty line or EOF.",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=20,
        help="How many contacts to print (default: 20).",
    )
    parser.add_argument(
        "--quality",
        action="store_true",
        help="Print the data quality report.",
    )
    parser.add_argument(
        "--plot",
        default=None,
        help="Write a messages-per-contact chart to this HTML file.",
    )
    return parser.parse_args(argv)


def print_contacts(contacts: Sequence[Contact], limit: int) -> None:
    for i, contact in enumerate(contacts[:limit], 1):
        marker = f"{Colors.OKBLUE}●{Colors.ENDC}" if not contact.is_read else " "
        name = get_contact_display_name(contact)
        when = format_message_time(contact.last_message_time)
        count = format_message_count(contact.message_count)
        print(f"{marker}{i:3d}. {name:30s} {when:>10s}  ({count} msgs)  {contact.last_message[:40]}")
    if len(contacts) > limit:
        print(f"  ... and {len(contacts) - limit} more")


def print_search(client: SearchClient, result: ETLResult, query: str, limit: int) -> None:
    """Run one search through the worker and print matches with snippets."""
    session = SearchSession(client)
    session.search_now(query)
    matched = session.filter_contacts(result.contacts)
    locations = find_matches(
        [c.contact_id for c in matched], result.messages_by_contact, query, get_config()
    )

    print_section(f'Search: "{query}" ({len(matched)} contacts)')
    for i, contact in enumerate(matched[:limit], 1):
        location = locations.get(contact.contact_id)
        snippet = location.snippet if location else ""
        print(f"{i:3d}. {get_contact_display_name(contact):30s} {snippet}")


def main(argv: Optional[List[str]] = None):
    """Main function."""
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    setup_logging()
    config = get_config(export_path=args.export)

    if not config.validate():
        print(f"{Colors.FAIL}Error: Export file not found or not readable.{Colors.ENDC}")
        print("Pass a path or set MESSAGE_VIEWER_EXPORT_PATH.")
        sys.exit(1)

    try:
        result = run_etl_from_file(config.export_path, config, check_quality=args.quality)
    except ExportFormatError as e:
        print(f"{Colors.FAIL}Error: {e}{Colors.ENDC}")
        sys.exit(1)

    print(f"{Colors.OKGREEN}Using export: {config.export_path_str}{Colors.ENDC}")
    print(result)

    if args.quality and result.quality is not None:
        print_section("Data Quality")
        print(result.quality)
        if result.phone_stats and result.phone_stats.phone_variations:
            print(f"\n{Colors.BOLD}Phone variations:{Colors.ENDC}")
            for key, variants in result.phone_stats.phone_variations.items():
                print(f"  {key}: {', '.join(variants)}")

    if args.plot:
        plot_messages_per_contact(result.contacts, output_file=args.plot)

    if not args.search and not args.interactive:
        print_section(f"Contacts ({len(result.contacts)})")
        print_contacts(result.contacts, args.limit)
        return

    with SearchClient(timeout=config.search_timeout) as client:
        client.init_index(result.search_index)

        if args.search:
            print_search(client, result, args.search, args.limit)

        if args.interactive:
            while True:
                try:
                    query = input("search> ")
                except EOFError:
                    break
                if not query.strip():
                    break
                print_search(client, result, query, args.limit)


if __name__ == "__main__":
    main()
