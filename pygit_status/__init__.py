"""
pygit-status: Git Repository Status Scanner

Discovers git repositories under one or more directories and streams the
status of each one (branch, upstream divergence, working tree changes,
stashes) as it is computed.
"""

from colorama import init as colorama_init

colorama_init(autoreset=True)

__version__ = "0.3.0"

# Re-export public API so `from pygit_status import X` keeps working.
from pygit_status.cache import CacheEntry, ResultCache  # noqa: E402
from pygit_status.cli import main  # noqa: E402
from pygit_status.config import (  # noqa: E402
    DEFAULT_EXCLUDE_PATTERNS,
    ScanSetup,
    build_scan_setup,
    create_argument_parser,
    load_config_file,
)
from pygit_status.detector import RepoDetector  # noqa: E402
from pygit_status.errors import RepoOpenError, SessionFatalError  # noqa: E402
from pygit_status.events import (  # noqa: E402
    Discovered,
    DiscoveryError,
    ScanCancelled,
    ScanCompleted,
    ScanEvent,
    StatusFailed,
    StatusReady,
)
from pygit_status.gatherer import StatusGatherer  # noqa: E402
from pygit_status.models import (  # noqa: E402
    ChangeKind,
    CommitSummary,
    FailureCause,
    FileChange,
    FileChangeStatus,
    RefSnapshot,
    RepoError,
    RepoHandle,
    RepoHealth,
    RepoKind,
    RepoStatus,
    ScanConfig,
    ScanRoot,
    SessionState,
    WorkingTreeCounts,
)
from pygit_status.output import SECTION_WIDTH, ConsoleOutputHandler, NullOutputHandler  # noqa: E402
from pygit_status.protocols import GitBackend, OutputHandler, RepositoryReader  # noqa: E402
from pygit_status.reporter import ListingReport, ListingReporter, RepoRow  # noqa: E402
from pygit_status.repository import GitPythonBackend, GitPythonRepository  # noqa: E402
from pygit_status.session import ScanSession, start_scan  # noqa: E402
from pygit_status.walker import Candidate, PathWalker  # noqa: E402

__all__ = [
    "__version__",
    # Models
    "ChangeKind",
    "CommitSummary",
    "FailureCause",
    "FileChange",
    "FileChangeStatus",
    "RefSnapshot",
    "RepoError",
    "RepoHandle",
    "RepoHealth",
    "RepoKind",
    "RepoStatus",
    "ScanConfig",
    "ScanRoot",
    "SessionState",
    "WorkingTreeCounts",
    # Events
    "Discovered",
    "DiscoveryError",
    "ScanCancelled",
    "ScanCompleted",
    "ScanEvent",
    "StatusFailed",
    "StatusReady",
    # Errors
    "RepoOpenError",
    "SessionFatalError",
    # Protocols
    "GitBackend",
    "OutputHandler",
    "RepositoryReader",
    # Implementations
    "GitPythonBackend",
    "GitPythonRepository",
    "ConsoleOutputHandler",
    "NullOutputHandler",
    "SECTION_WIDTH",
    # Engine
    "Candidate",
    "PathWalker",
    "RepoDetector",
    "StatusGatherer",
    "ScanSession",
    "start_scan",
    "CacheEntry",
    "ResultCache",
    # Listing
    "ListingReport",
    "ListingReporter",
    "RepoRow",
    # Config / CLI
    "DEFAULT_EXCLUDE_PATTERNS",
    "ScanSetup",
    "build_scan_setup",
    "create_argument_parser",
    "load_config_file",
    "main",
]
