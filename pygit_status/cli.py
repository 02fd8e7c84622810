"""CLI entry point: main() function for the listing mode."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

from colorama import Fore, Style
from tqdm import tqdm

from pygit_status.config import build_scan_setup, create_argument_parser, load_config_file
from pygit_status.errors import SessionFatalError
from pygit_status.events import ScanEvent, StatusFailed, StatusReady
from pygit_status.output import ConsoleOutputHandler, NullOutputHandler
from pygit_status.reporter import ListingReport, ListingReporter
from pygit_status.session import ScanSession, start_scan


def _drain(session: ScanSession, collected: list[ScanEvent], show_progress: bool) -> None:
    """Consume the session's events into collected, ticking a progress counter per repository."""
    with tqdm(desc="Scanning", unit="repo", disable=not show_progress, leave=False) as pbar:
        for event in session.events():
            collected.append(event)
            if isinstance(event, (StatusReady, StatusFailed)):
                pbar.set_postfix_str(event.handle.name, refresh=False)
                pbar.update(1)


def main(argv: list[str] | None = None):
    """Main entry point"""
    argv = sys.argv[1:] if argv is None else argv
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    search_dir = Path(args.directories[0]).expanduser() if args.directories else Path.cwd()
    file_config = load_config_file(search_dir, args.config)
    setup = build_scan_setup(parser, args, file_config, argv)

    logging.basicConfig(
        level=logging.DEBUG if setup.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    output = NullOutputHandler() if setup.json_output else ConsoleOutputHandler(verbose=setup.verbose)

    try:
        session = start_scan(setup.roots, setup.config)
    except SessionFatalError as e:
        if setup.json_output:
            print(json.dumps({'error': str(e)}, indent=2))
        else:
            print(f"{Fore.RED}Error: {e}{Style.RESET_ALL}")
        sys.exit(1)

    collected: list[ScanEvent] = []
    exit_code = 0
    with session:
        try:
            _drain(session, collected, show_progress=not setup.json_output)
        except KeyboardInterrupt:
            session.cancel()
            output.warning("\n\nInterrupted by user")
            collected.extend(session.drain())
            exit_code = 130

    report = ListingReport.from_events(
        collected, dirty_only=setup.dirty_only, conflicts_only=setup.conflicts_only
    )
    if setup.json_output:
        print(json.dumps(report.to_dict(), indent=2))
    elif setup.detail:
        ListingReporter(output).print_detail(report)
    else:
        ListingReporter(output).print_report(report)

    sys.exit(exit_code)
