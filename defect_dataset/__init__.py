"""
Defect Dataset - Method-Level Bug Labels from Release History
==============================================================

Builds a per-release, method-level dataset for defect prediction from Jira bug
tickets, git fix commits and precomputed method metrics.

Key idea: a bug is not only present in the release where it was reported.
Its introduction version is estimated with the proportion method, and every
method touched by the fix is labeled buggy from that release up to (but not
including) the release that fixed it.
"""

from .config import (
    CSV_HEADERS,
    FEATURE_COLS,
    DEFAULT_PROPORTION,
    RELEASE_CUTOFF_FRACTION,
    ZERO_RATIO_THRESHOLD,
)

from .models import (
    Release,
    BugReport,
    AnalyzedMethod,
    method_key,
)

from .releases import (
    build_release_timeline,
    release_index_for_date,
    assign_version_indices,
)

from .proportion import (
    estimate_proportion_coefficient,
    resolve_introduction_index,
    resolve_tickets,
)

from .labeling import is_method_buggy_at_release

from .dataset import (
    AssemblyReport,
    AssemblyResult,
    assemble,
    build_dataset,
)

from .pruning import prune_low_variance_columns

from .jira import JiraClient
from .gitrepo import GitRepository
from .snapshots import SnapshotMethodSource

from .pipeline import (
    DatasetGenerationError,
    generate_dataset,
    write_dataset,
)

__version__ = "0.1.0"

__all__ = [
    # Config
    "CSV_HEADERS",
    "FEATURE_COLS",
    "DEFAULT_PROPORTION",
    "RELEASE_CUTOFF_FRACTION",
    "ZERO_RATIO_THRESHOLD",
    # Models
    "Release",
    "BugReport",
    "AnalyzedMethod",
    "method_key",
    # Releases
    "build_release_timeline",
    "release_index_for_date",
    "assign_version_indices",
    # Proportion
    "estimate_proportion_coefficient",
    "resolve_introduction_index",
    "resolve_tickets",
    # Labeling
    "is_method_buggy_at_release",
    # Assembly
    "AssemblyReport",
    "AssemblyResult",
    "assemble",
    "build_dataset",
    "prune_low_variance_columns",
    # Collaborators
    "JiraClient",
    "GitRepository",
    "SnapshotMethodSource",
    # Pipeline
    "DatasetGenerationError",
    "generate_dataset",
    "write_dataset",
]
