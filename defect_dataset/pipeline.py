"""
End-to-end dataset generation for one project.
"""

import csv
import os
import tempfile
from pathlib import Path

import pandas as pd
import requests
from git.exc import GitError
from gitdb.exc import ODBError

from .config import DATASET_OUTPUT_DIR, RELEASE_CUTOFF_FRACTION
from .dataset import AssemblyReport, build_dataset
from .releases import assign_version_indices


class DatasetGenerationError(RuntimeError):
    """Generation of a project's dataset failed; `cause` holds the underlying error"""

    def __init__(self, project: str, cause: Exception):
        super().__init__(f"Failed to generate dataset for project {project}: {cause}")
        self.project = project
        self.cause = cause


def write_dataset(table: pd.DataFrame, csv_path) -> Path:
    """Write the table with every field quoted; the target is replaced atomically"""
    csv_path = Path(csv_path)
    csv_path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=csv_path.parent, prefix=f".{csv_path.name}.", suffix='.tmp')
    os.close(fd)
    try:
        table.to_csv(tmp_name, index=False, quoting=csv.QUOTE_ALL)
        os.replace(tmp_name, csv_path)
    except Exception:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return csv_path


def generate_dataset(
    project: str,
    tracker,
    repository,
    method_source,
    output_dir=DATASET_OUTPUT_DIR,
    cutoff_fraction: float = RELEASE_CUTOFF_FRACTION,
) -> AssemblyReport:
    """
    Build and persist <output_dir>/<project>.csv.

    Args:
        project: Project name, used for the Project column and the file name
        tracker: Issue tracker client (see jira.JiraClient)
        repository: Git history adapter (see gitrepo.GitRepository)
        method_source: Snapshot provider (see snapshots.SnapshotMethodSource)
        output_dir: Directory the CSV is written to
        cutoff_fraction: Share of the release timeline to analyze

    Raises:
        DatasetGenerationError: if any step fails; no partial file is left behind
    """
    print(f"\nGenerating dataset: {project}", flush=True)
    csv_path = Path(output_dir) / f"{project}.csv"

    try:
        releases = tracker.fetch_releases()
        tickets = tracker.fetch_bug_tickets()
        repository.find_and_set_fix_commits(tickets)
        assign_version_indices(tickets, releases)
        fixed_method_keys = repository.map_tickets_to_fixed_method_keys(tickets)

        release_commits = repository.find_release_commits(releases)
        release_handles = method_source.handles_for(releases, release_commits)

        result = build_dataset(
            project, releases, tickets, fixed_method_keys,
            method_source, release_handles, cutoff_fraction,
        )
        write_dataset(result.table, csv_path)
    except (OSError, ValueError, requests.RequestException, GitError, ODBError) as e:
        raise DatasetGenerationError(project, e) from e

    report = result.report
    print(f"  Saved {report.rows} rows x {len(report.columns)} columns to {csv_path}", flush=True)
    return report
