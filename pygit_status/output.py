"""Output handler implementations: console and null."""

from __future__ import annotations

from colorama import Fore, Style
from tqdm import tqdm

from pygit_status.models import FileChange, FileChangeStatus, RepoHealth

SECTION_WIDTH = 50
DETAIL_WIDTH = 70
FIELD_WIDTH = 10

HEALTH_COLORS = {
    RepoHealth.CLEAN: Fore.GREEN,
    RepoHealth.DIVERGED: Fore.YELLOW,
    RepoHealth.DIRTY: Fore.YELLOW,
    RepoHealth.CONFLICTED: Fore.MAGENTA,
    RepoHealth.FAILED: Fore.RED,
}

FILE_MARKERS = {
    FileChangeStatus.STAGED: ('[S]', Fore.GREEN),
    FileChangeStatus.MODIFIED: ('[M]', Fore.YELLOW),
    FileChangeStatus.UNTRACKED: ('[U]', Fore.CYAN),
    FileChangeStatus.CONFLICTED: ('[C]', Fore.RED),
}


class ConsoleOutputHandler:
    """Console output with colors."""

    def __init__(self, verbose: bool = False):
        """Create a console handler. Set verbose=True to enable debug output."""
        self.verbose = verbose

    def info(self, message: str, indent: int = 0) -> None:
        """Print an informational message."""
        tqdm.write("  " * indent + message)

    def warning(self, message: str, indent: int = 0) -> None:
        """Print a yellow warning message."""
        tqdm.write("  " * indent + f"{Fore.YELLOW}{message}{Style.RESET_ALL}")

    def error(self, message: str, indent: int = 0) -> None:
        """Print a red error message."""
        tqdm.write("  " * indent + f"{Fore.RED}{message}{Style.RESET_ALL}")

    def section(self, title: str) -> None:
        """Print a section header with a divider line."""
        tqdm.write("")
        tqdm.write(title)
        tqdm.write("-" * SECTION_WIDTH)

    def debug(self, message: str) -> None:
        """Print a cyan debug message (only when verbose is enabled)."""
        if self.verbose:
            tqdm.write(f"{Fore.CYAN}[DEBUG] {message}{Style.RESET_ALL}")

    def repo_line(self, message: str, health: RepoHealth, indent: int = 0) -> None:
        """Print a line about one repository in the color of its health."""
        tqdm.write("  " * indent + f"{HEALTH_COLORS[health]}{message}{Style.RESET_ALL}")

    def heading(self, title: str) -> None:
        """Print a bright cyan repository name."""
        tqdm.write(f"{Style.BRIGHT}{Fore.CYAN}{title}{Style.RESET_ALL}")

    def field(self, label: str, value: str, indent: int = 1) -> None:
        """Print a dimmed 'Label:' followed by its value."""
        tqdm.write("  " * indent + f"{Style.DIM}{label + ':':<{FIELD_WIDTH}}{Style.RESET_ALL}{value}")

    def file_change(self, change: FileChange, indent: int = 2) -> None:
        """Print a changed path behind its colored status marker."""
        marker, color = FILE_MARKERS[change.status]
        tqdm.write("  " * indent + f"{color}{marker}{Style.RESET_ALL} {change.path}")

    def divider(self) -> None:
        tqdm.write("-" * DETAIL_WIDTH)


class NullOutputHandler:
    """Silent output handler for testing and JSON mode."""

    def info(self, message: str, indent: int = 0) -> None:
        """No-op."""
        pass

    def warning(self, message: str, indent: int = 0) -> None:
        """No-op."""
        pass

    def error(self, message: str, indent: int = 0) -> None:
        """No-op."""
        pass

    def section(self, title: str) -> None:
        """No-op."""
        pass

    def debug(self, message: str) -> None:
        """No-op."""
        pass

    def repo_line(self, message: str, health: RepoHealth, indent: int = 0) -> None:
        """No-op."""
        pass

    def heading(self, title: str) -> None:
        """No-op."""
        pass

    def field(self, label: str, value: str, indent: int = 1) -> None:
        """No-op."""
        pass

    def file_change(self, change: FileChange, indent: int = 2) -> None:
        """No-op."""
        pass

    def divider(self) -> None:
        """No-op."""
        pass
