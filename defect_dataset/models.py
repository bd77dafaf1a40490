"""
Core entities: releases, bug tickets and analyzed methods.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from types import MappingProxyType
from typing import Mapping

from .config import UNKNOWN_INDEX, METHOD_KEY_SEPARATOR, METHOD_NAME_SEPARATOR


@dataclass(frozen=True)
class Release:
    """A project release on the timeline; index is its 1-based chronological rank"""
    name: str
    date: date
    index: int


@dataclass(eq=False)
class BugReport:
    """A fixed bug ticket and the release indices it maps to"""
    key: str
    creation_date: datetime
    resolution_date: datetime | None = None
    affected_versions: frozenset = field(default_factory=frozenset)

    # Version indices, populated by assign_version_indices()
    introduction_version_index: int = UNKNOWN_INDEX
    opening_version_index: int = UNKNOWN_INDEX
    fixed_version_index: int = UNKNOWN_INDEX

    fix_commit_id: str | None = None

    def __eq__(self, other) -> bool:
        if not isinstance(other, BugReport):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)


@dataclass(frozen=True)
class AnalyzedMethod:
    """A method snapshot produced by static analysis for one release"""
    identity: str
    signature: str
    filepath: str
    features: Mapping[str, float] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        # Freeze a private copy so the collaborator's dict can't leak mutations in
        object.__setattr__(self, 'features', MappingProxyType(dict(self.features)))

    @property
    def key(self) -> str:
        """Identity used to attribute fixes: filepath::signature"""
        return method_key(self.filepath, self.signature)

    @property
    def name(self) -> str:
        """Value of the MethodName column: filepath/signature"""
        return f"{self.filepath}{METHOD_NAME_SEPARATOR}{self.signature}"

    def feature(self, name: str, default: float = 0) -> float:
        return self.features.get(name, default)


def method_key(filepath: str, signature: str) -> str:
    return f"{filepath}{METHOD_KEY_SEPARATOR}{signature}"
