"""
Proportion-based estimation of bug introduction versions.

Tickets with a known introduction version (IV) give the ratio
(FV - IV) / (FV - OV), i.e. how far before the opening version (OV) a defect
tends to appear relative to the opened->fixed span. The median ratio is used
to estimate IV for tickets whose affected versions are unknown.
"""

import math
from dataclasses import replace
from typing import Iterable

import numpy as np

from .config import DEFAULT_PROPORTION
from .models import BugReport


def _is_eligible(ticket: BugReport) -> bool:
    iv = ticket.introduction_version_index
    ov = ticket.opening_version_index
    fv = ticket.fixed_version_index
    return iv > 0 and fv > 0 and ov > 0 and fv > ov


def estimate_proportion_coefficient(tickets: Iterable[BugReport]) -> float:
    """Median proportion over tickets with known IV, OV and FV (1.5 if none)"""
    proportions = sorted(
        (t.fixed_version_index - t.introduction_version_index)
        / (t.fixed_version_index - t.opening_version_index)
        for t in tickets if _is_eligible(t)
    )
    if not proportions:
        return DEFAULT_PROPORTION
    return float(np.median(proportions))


def resolve_introduction_index(ticket: BugReport, p_median: float) -> int:
    """
    Return the ticket's IV, estimating it from p_median when unknown.

    An estimate is only possible when FV > OV > 0 and is floored at 1.
    Otherwise the (unknown) IV is returned as is.
    """
    iv = ticket.introduction_version_index
    if iv > 0:
        return iv

    fv = ticket.fixed_version_index
    ov = ticket.opening_version_index
    if fv > 0 and ov > 0 and fv > ov:
        # round half up, not to even
        estimate = math.floor(fv - (fv - ov) * p_median + 0.5)
        return max(1, estimate)
    return iv


def resolve_tickets(tickets: Iterable[BugReport], p_median: float) -> list[BugReport]:
    """Copies of the tickets with introduction indices resolved; inputs are left untouched"""
    return [
        replace(t, introduction_version_index=resolve_introduction_index(t, p_median))
        for t in tickets
    ]
