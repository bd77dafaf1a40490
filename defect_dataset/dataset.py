"""
Assembly of the method-level, per-release defect dataset.
"""

import math
from collections import defaultdict
from dataclasses import dataclass, field, asdict
from typing import Any, Collection, Mapping, Sequence

import pandas as pd

from .config import (
    CSV_HEADERS,
    FEATURE_COLS,
    DECIMAL_FEATURES,
    TRIVIAL_METHOD_LIMIT,
    BUGGY_YES,
    BUGGY_NO,
)
from .labeling import is_method_buggy_at_release
from .models import AnalyzedMethod, BugReport, Release
from .proportion import estimate_proportion_coefficient, resolve_tickets
from .pruning import prune_low_variance_columns
from .releases import ensure_chronological


@dataclass
class AssemblyReport:
    """Counts describing one dataset-generation run"""
    project: str
    proportion_coefficient: float = 0.0
    releases_total: int = 0
    releases_analyzed: int = 0
    releases_skipped: list[str] = field(default_factory=list)
    methods_seen: int = 0
    duplicates: int = 0
    trivial_methods: int = 0
    rows: int = 0
    buggy_rows: int = 0
    dropped_columns: list[str] = field(default_factory=list)
    columns: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return asdict(self)


@dataclass
class AssemblyResult:
    table: pd.DataFrame
    report: AssemblyReport


def releases_to_analyze(releases: Sequence[Release], cutoff_fraction: float) -> list[Release]:
    """The chronologically first ceil(len * cutoff_fraction) releases"""
    if not 0 < cutoff_fraction <= 1:
        raise ValueError(f"cutoff_fraction must be in (0, 1], got {cutoff_fraction}")
    ensure_chronological(releases)
    return list(releases[:math.ceil(len(releases) * cutoff_fraction)])


def is_trivial_method(method: AnalyzedMethod) -> bool:
    """Accessor-like methods: low complexity, few parameters and shallow nesting"""
    return (
        int(method.feature('CyclomaticComplexity')) <= TRIVIAL_METHOD_LIMIT
        and int(method.feature('ParameterCount')) <= TRIVIAL_METHOD_LIMIT
        and int(method.feature('NestingDepth')) <= TRIVIAL_METHOD_LIMIT
    )


def format_feature(name: str, value: Any) -> str:
    if name in DECIMAL_FEATURES:
        return f"{float(value):.2f}"
    return str(int(value))


def build_row(project: str, method: AnalyzedMethod, release: Release, is_buggy: bool) -> list[str]:
    """One CSV-bound row; features missing from the snapshot are written as 0"""
    return [
        project,
        method.name,
        release.name,
        *(format_feature(name, method.feature(name, 0)) for name in FEATURE_COLS),
        BUGGY_YES if is_buggy else BUGGY_NO,
    ]


def _index_tickets_by_method(
    tickets: Sequence[BugReport],
    fixed_method_keys: Mapping[str, Collection[str]],
) -> dict[str, list[BugReport]]:
    # Keeps ticket order so labeling is deterministic
    by_method = defaultdict(list)
    for ticket in tickets:
        for key in fixed_method_keys.get(ticket.key, ()):
            by_method[key].append(ticket)
    return by_method


def assemble(
    project: str,
    releases: Sequence[Release],
    tickets: Sequence[BugReport],
    fixed_method_keys: Mapping[str, Collection[str]],
    method_source,
    release_handles: Mapping[str, Any],
    cutoff_fraction: float,
) -> AssemblyResult:
    """
    Build the raw (unpruned) dataset table.

    Args:
        project: Value of the Project column
        releases: Full release timeline in chronological order
        tickets: Bug tickets with version indices already assigned
        fixed_method_keys: Ticket key -> method keys touched by its fix commit
        method_source: Object with methods_for_release(handle) -> list[AnalyzedMethod]
        release_handles: Release name -> snapshot handle; releases without one are skipped
        cutoff_fraction: Share of the timeline to analyze, in (0, 1]
    """
    analyzed = releases_to_analyze(releases, cutoff_fraction)
    print(f"  Analyzing {len(analyzed)} of {len(releases)} releases "
          f"(cutoff at {cutoff_fraction * 100:.0f}%)", flush=True)

    p_median = estimate_proportion_coefficient(tickets)
    print(f"  Proportion coefficient: {p_median:.3f}", flush=True)
    resolved = resolve_tickets(tickets, p_median)
    tickets_by_method = _index_tickets_by_method(resolved, fixed_method_keys)

    report = AssemblyReport(
        project=project,
        proportion_coefficient=p_median,
        releases_total=len(releases),
    )
    rows = []
    seen_keys = set()

    for position, release in enumerate(analyzed, 1):
        print(f"  [{position}/{len(analyzed)}] Release {release.name}", flush=True)
        handle = release_handles.get(release.name)
        if handle is None:
            print(f"  Skipping release {release.name}: no snapshot found", flush=True)
            report.releases_skipped.append(release.name)
            continue
        report.releases_analyzed += 1

        for method in method_source.methods_for_release(handle):
            report.methods_seen += 1
            dedup_key = f"{method.name}|{release.name}"
            if dedup_key in seen_keys:
                report.duplicates += 1
                continue
            seen_keys.add(dedup_key)

            if is_trivial_method(method):
                report.trivial_methods += 1
                continue

            is_buggy = is_method_buggy_at_release(
                method, release, tickets_by_method.get(method.key, ()), fixed_method_keys
            )
            rows.append(build_row(project, method, release, is_buggy))
            report.buggy_rows += is_buggy

    if report.duplicates:
        print(f"  Removed {report.duplicates} duplicate rows (same MethodName + Release)", flush=True)

    table = pd.DataFrame(rows, columns=CSV_HEADERS)
    report.rows = len(table)
    report.columns = list(table.columns)
    return AssemblyResult(table=table, report=report)


def build_dataset(
    project: str,
    releases: Sequence[Release],
    tickets: Sequence[BugReport],
    fixed_method_keys: Mapping[str, Collection[str]],
    method_source,
    release_handles: Mapping[str, Any],
    cutoff_fraction: float,
) -> AssemblyResult:
    """Assemble the dataset, then drop quasi-constant feature columns"""
    result = assemble(
        project, releases, tickets, fixed_method_keys,
        method_source, release_handles, cutoff_fraction,
    )
    table, dropped = prune_low_variance_columns(result.table)
    result.report.dropped_columns = dropped
    result.report.columns = list(table.columns)

    print(f"  Built {len(table)} rows x {len(table.columns)} columns "
          f"({result.report.buggy_rows} buggy)", flush=True)
    return AssemblyResult(table=table, report=result.report)
