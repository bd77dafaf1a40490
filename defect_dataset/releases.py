"""
Release timeline construction and date-to-release mapping.
"""

from datetime import date, datetime
from typing import Iterable, Sequence

from .config import UNKNOWN_INDEX
from .models import Release, BugReport


def build_release_timeline(raw: Iterable[tuple[str, date]]) -> list[Release]:
    """Sort (name, date) pairs chronologically and assign 1-based indices"""
    ordered = sorted(raw, key=lambda item: item[1])
    return [Release(name, released, i) for i, (name, released) in enumerate(ordered, 1)]


def ensure_chronological(releases: Sequence[Release]) -> None:
    """Raise ValueError unless releases are in ascending date and index order"""
    for prev, curr in zip(releases, releases[1:]):
        if curr.date < prev.date or curr.index <= prev.index:
            raise ValueError(
                f"Releases must be in chronological order: "
                f"{prev.name} ({prev.date}, #{prev.index}) precedes "
                f"{curr.name} ({curr.date}, #{curr.index})"
            )


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def release_index_for_date(when: date | datetime, releases: Sequence[Release]) -> int:
    """
    Index of the release that was current on `when`.

    That is the latest release dated on or before `when`. Dates before the
    first release map to the first release and dates past the last release
    clamp to the last one; an empty timeline yields UNKNOWN_INDEX.

    A date falling between two releases maps to the earlier one. This does not
    round forward to the next release on or after the date, so OV and FV land
    one release earlier than forward rounding would put them.
    """
    if not releases:
        return UNKNOWN_INDEX
    ensure_chronological(releases)

    day = _as_date(when)
    index = releases[0].index
    for release in releases:
        if release.date > day:
            break
        index = release.index
    return index


def assign_version_indices(tickets: Iterable[BugReport], releases: Sequence[Release]) -> None:
    """
    Populate opening, fixed and introduction indices on each ticket.

    OV comes from the creation date, FV from the resolution date (if any) and
    IV from the earliest affected version that names a known release.
    """
    ensure_chronological(releases)
    index_by_name = {r.name: r.index for r in releases}

    for ticket in tickets:
        ticket.opening_version_index = release_index_for_date(ticket.creation_date, releases)
        if ticket.resolution_date is not None:
            ticket.fixed_version_index = release_index_for_date(ticket.resolution_date, releases)

        affected = [index_by_name[v] for v in ticket.affected_versions if v in index_by_name]
        if affected:
            ticket.introduction_version_index = min(affected)
