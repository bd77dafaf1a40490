#!/usr/bin/env python3
"""
Generate a labeled method-level dataset for one project.

Usage:
    python generate_dataset.py --project BOOKKEEPER --repo ./github_projects/bookkeeper \\
        --snapshots ./snapshots/BOOKKEEPER
    python generate_dataset.py --project OPENJPA --repo ./openjpa --snapshots ./snap --cutoff 0.33
"""

import argparse
import sys

from defect_dataset import (
    JiraClient,
    GitRepository,
    SnapshotMethodSource,
    DatasetGenerationError,
    generate_dataset,
)
from defect_dataset.config import (
    JIRA_URL,
    DATASET_OUTPUT_DIR,
    RELEASE_CUTOFF_FRACTION,
    SOURCE_EXTENSION,
)


def print_summary(report):
    """Print the assembly report"""
    print(f"\n{'='*60}")
    print(f"DATASET SUMMARY: {report.project}")
    print(f"{'='*60}")
    print(f"  Proportion coefficient: {report.proportion_coefficient:.3f}")
    print(f"  Releases analyzed:      {report.releases_analyzed}/{report.releases_total}")
    if report.releases_skipped:
        print(f"  Releases skipped:       {', '.join(report.releases_skipped)}")
    print(f"  Methods seen:           {report.methods_seen}")
    print(f"  Duplicates removed:     {report.duplicates}")
    print(f"  Trivial methods:        {report.trivial_methods}")
    print(f"  Rows:                   {report.rows} ({report.buggy_rows} buggy)")
    print(f"  Columns:                {len(report.columns)}")
    if report.dropped_columns:
        print(f"  Dropped columns:        {', '.join(report.dropped_columns)}")


def main():
    parser = argparse.ArgumentParser(description='Defect dataset generator')
    parser.add_argument('--project', required=True, help='Project name (also the Jira key by default)')
    parser.add_argument('--jira-key', help='Jira project key, if different from --project')
    parser.add_argument('--jira-url', default=JIRA_URL, help='Jira base URL')
    parser.add_argument('--repo', required=True, help='Path to a local clone of the project')
    parser.add_argument('--snapshots', required=True,
                        help='Directory of per-release method metric CSVs')
    parser.add_argument('--output', default=DATASET_OUTPUT_DIR, help='Output directory')
    parser.add_argument('--cutoff', type=float, default=RELEASE_CUTOFF_FRACTION,
                        help='Fraction of releases to analyze (0 < f <= 1)')
    parser.add_argument('--extension', default=SOURCE_EXTENSION,
                        help='Source file extension used to map fixes to methods')
    args = parser.parse_args()

    if not 0 < args.cutoff <= 1:
        parser.error(f"--cutoff must be in (0, 1], got {args.cutoff}")

    tracker = JiraClient(args.jira_key or args.project, base_url=args.jira_url)
    repository = GitRepository(args.repo, args.project, extension=args.extension)
    try:
        report = generate_dataset(
            args.project,
            tracker,
            repository,
            SnapshotMethodSource(args.snapshots),
            output_dir=args.output,
            cutoff_fraction=args.cutoff,
        )
    except DatasetGenerationError as e:
        print(f"  ERROR: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        repository.close()

    print_summary(report)


if __name__ == "__main__":
    main()
