"""
Bug-window labeling of methods per release.
"""

from typing import Collection, Iterable, Mapping

from .models import AnalyzedMethod, BugReport, Release


def in_bug_window(ticket: BugReport, release: Release) -> bool:
    """True if release falls in the ticket's half-open window [IV, FV)"""
    iv = ticket.introduction_version_index
    fv = ticket.fixed_version_index
    if iv <= 0 or fv <= 0:
        return False
    return iv <= release.index < fv


def is_method_buggy_at_release(
    method: AnalyzedMethod,
    release: Release,
    tickets: Iterable[BugReport],
    fixed_method_keys: Mapping[str, Collection[str]],
) -> bool:
    """
    Label a method buggy if any ticket whose fix touched it covers this release.

    Tickets must already have resolved introduction indices (see
    proportion.resolve_tickets); unresolved ones never match.
    """
    key = method.key
    for ticket in tickets:
        if key not in fixed_method_keys.get(ticket.key, ()):
            continue
        if in_bug_window(ticket, release):
            return True
    return False
