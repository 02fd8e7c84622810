"""Configuration: argument parser, config file loader, and scan setup."""

from __future__ import annotations

import argparse
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pygit_status.models import ScanConfig, ScanRoot

CONFIG_FILENAME = '.pygitstatus.toml'
DEFAULT_MAX_DEPTH = 5

# Build output and dependency folders that never hold repositories worth listing
DEFAULT_EXCLUDE_PATTERNS = (
    'node_modules', 'target', 'venv', 'build', 'site', 'out', 'dist', 'bin', 'obj',
    'Debug', 'Release', 'cache', 'tmp', 'temp', 'log', 'logs', '*log', '*logs',
    'Library', 'Applications', 'AppData',
)


@dataclass(frozen=True)
class ScanSetup:
    """Everything the listing command needs to start a scan and print it"""
    roots: tuple[ScanRoot, ...]
    config: ScanConfig
    json_output: bool = False
    dirty_only: bool = False
    conflicts_only: bool = False
    detail: bool = False
    verbose: bool = False


def parse_max_depth(value: str) -> int | None:
    """argparse type for --max-depth: a non-negative integer or 'unbounded'."""
    if str(value).lower() == 'unbounded':
        return None
    try:
        depth = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a non-negative integer or 'unbounded', got {value!r}")
    if depth < 0:
        raise argparse.ArgumentTypeError(f"max depth must be non-negative, got {depth}")
    return depth


def create_argument_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser with all pygit-status flags."""
    # Lazy import to avoid circular dependency with __init__.py
    from pygit_status import __version__

    parser = argparse.ArgumentParser(
        description="List git repositories under one or more directories with their status",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s ~/projects                          # Table of every repository
  %(prog)s ~/work ~/oss --dirty-only           # Only repositories with changes
  %(prog)s ~/projects --detail                 # Fields and changed files per repo
  %(prog)s ~/projects --json                   # Machine-readable output
  %(prog)s ~/projects --nested --max-depth 8   # Also report repos inside repos
        """
    )

    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('directories', nargs='*', default=None,
                        help='Directories to scan (default: current)')
    parser.add_argument('--max-depth', type=parse_max_depth, default=DEFAULT_MAX_DEPTH,
                        help=f"Maximum directory depth, or 'unbounded' (default: {DEFAULT_MAX_DEPTH})")
    parser.add_argument('--exclude', action='append', default=[],
                        help='Exclude glob pattern (can specify multiple)')
    parser.add_argument('--no-default-excludes', dest='default_excludes', action='store_false',
                        help='Do not skip build/dependency folders such as node_modules')
    parser.add_argument('--follow-symlinks', action='store_true',
                        help='Descend into symlinked directories')
    parser.add_argument('--nested', dest='nested_discovery', action='store_true',
                        help='Keep searching inside discovered repositories')
    parser.add_argument('--include-hidden', action='store_true',
                        help='Descend into hidden directories')
    parser.add_argument('--jobs', type=int, default=ScanConfig().concurrency_limit,
                        help='Repositories read in parallel (default: min(cpu_count, 8))')
    parser.add_argument('--json', dest='json_output', action='store_true',
                        help='Output results as JSON (suppresses normal output)')
    parser.add_argument('--dirty-only', action='store_true',
                        help='Only list repositories with working tree changes')
    parser.add_argument('--conflicts-only', action='store_true',
                        help='Only list repositories with merge conflicts')
    parser.add_argument('--detail', action='store_true',
                        help='Show every field and changed file per repository instead of a table')
    parser.add_argument('--verbose', action='store_true',
                        help='Verbose output')
    parser.add_argument('--config', type=str, default=None,
                        help=f'Path to config file (default: {CONFIG_FILENAME} in first directory or home)')

    return parser


def load_config_file(search_dir: Path, config_path: str | None = None) -> dict[str, Any]:
    """Load .pygitstatus.toml from explicit path, search dir, or home dir.

    Returns empty dict if not found or unreadable.
    """
    candidates = [Path(config_path)] if config_path else [search_dir / CONFIG_FILENAME, Path.home() / CONFIG_FILENAME]
    for path in candidates:
        if path.is_file():
            try:
                with open(path, 'rb') as f:
                    return tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as e:
                print(f"Warning: Failed to parse {path}: {e}")
                return {}
    if config_path:
        print(f"Warning: Config file '{config_path}' not found. Ignoring.")
    return {}


def explicit_destinations(parser: argparse.ArgumentParser, argv: list[str]) -> set[str]:
    """Destinations whose option strings appear on the command line."""
    explicit = set()
    for action in parser._actions:
        if action.dest in ('help', 'version') or not action.option_strings:
            continue
        for opt_string in action.option_strings:
            if any(arg == opt_string or arg.startswith(opt_string + '=') for arg in argv):
                explicit.add(action.dest)
                break
    return explicit


def build_scan_setup(
    parser: argparse.ArgumentParser,
    args: argparse.Namespace,
    file_config: dict[str, Any],
    argv: list[str],
) -> ScanSetup:
    """Merge CLI flags over config file values over defaults."""
    cli_explicit = explicit_destinations(parser, argv)

    def effective(dest: str, toml_key: str, transform=None):
        if dest in cli_explicit:
            val = getattr(args, dest)
            return transform(val) if transform else val
        if toml_key in file_config:
            return file_config[toml_key]
        val = getattr(args, dest)
        return transform(val) if transform else val

    directories = args.directories or file_config.get('directories') or ['.']
    if isinstance(directories, str):
        directories = [directories]

    max_depth = effective('max_depth', 'max_depth')
    if isinstance(max_depth, str):
        max_depth = parse_max_depth(max_depth)

    exclude_raw = effective('exclude', 'exclude_patterns')
    exclude_patterns = list(exclude_raw) if exclude_raw else []
    if effective('default_excludes', 'use_default_excludes'):
        exclude_patterns = list(DEFAULT_EXCLUDE_PATTERNS) + exclude_patterns

    follow_symlinks = bool(effective('follow_symlinks', 'follow_symlinks'))
    nested_discovery = bool(effective('nested_discovery', 'nested_discovery'))
    skip_hidden = not effective('include_hidden', 'include_hidden')

    roots = tuple(
        ScanRoot(
            path=Path(directory).expanduser().resolve(),
            max_depth=max_depth,
            exclude_patterns=tuple(exclude_patterns),
            follow_symlinks=follow_symlinks,
            nested_discovery=nested_discovery,
            skip_hidden=skip_hidden,
        )
        for directory in directories
    )

    config = ScanConfig(concurrency_limit=effective('jobs', 'concurrency_limit'))
    if 'eviction_after_scans' in file_config:
        config = config.with_updates(eviction_after_scans=file_config['eviction_after_scans'])

    return ScanSetup(
        roots=roots,
        config=config,
        json_output=bool(effective('json_output', 'json_output')),
        dirty_only=bool(effective('dirty_only', 'dirty_only')),
        conflicts_only=bool(effective('conflicts_only', 'conflicts_only')),
        detail=bool(effective('detail', 'detail')),
        verbose=bool(effective('verbose', 'verbose')),
    )
