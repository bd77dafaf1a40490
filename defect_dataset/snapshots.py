"""
Loading of per-release method metrics produced by an external static analyzer.

Each release snapshot is a CSV with one row per method. The `filepath` and
`signature` columns are required, `identity` is optional and every other
column is read as a numeric feature.

`signature` is the method name followed by its parameter types, without the
declaring class or parameter names: `foo(int, List<String>)`. Generic
arguments are comma-joined without spaces and varargs are written as arrays
(`String[]`). Fixed-method keys from gitrepo.method_signature use the same
form, so the two sides only match when the analyzer follows it.
"""

from pathlib import Path
from typing import Mapping, Sequence

import pandas as pd

from .models import AnalyzedMethod, Release, method_key

REQUIRED_COLS = ('filepath', 'signature')


class SnapshotMethodSource:
    """Method snapshots stored as <directory>/<release or commit>.csv"""

    def __init__(self, directory):
        self.directory = Path(directory)

    def handles_for(
        self,
        releases: Sequence[Release],
        release_commits: Mapping[str, str] | None = None,
    ) -> dict[str, Path]:
        """Snapshot file per release name, falling back to the release's tag commit"""
        release_commits = release_commits or {}
        handles = {}
        for release in releases:
            candidates = [release.name, release_commits.get(release.name)]
            for stem in filter(None, candidates):
                path = self.directory / f"{stem}.csv"
                if path.is_file():
                    handles[release.name] = path
                    break
        return handles

    def methods_for_release(self, handle) -> list[AnalyzedMethod]:
        df = pd.read_csv(handle, dtype=str)
        missing = [c for c in REQUIRED_COLS if c not in df.columns]
        if missing:
            raise ValueError(f"Snapshot {handle} is missing columns: {missing}")

        feature_cols = [c for c in df.columns if c not in REQUIRED_COLS and c != 'identity']
        features = df[feature_cols].apply(pd.to_numeric, errors='coerce') if feature_cols else None

        methods = []
        for i, row in df.iterrows():
            filepath, signature = row['filepath'], row['signature']
            identity = row.get('identity')
            values = features.loc[i].dropna().to_dict() if features is not None else {}
            methods.append(AnalyzedMethod(
                identity=identity if isinstance(identity, str) else method_key(filepath, signature),
                signature=signature,
                filepath=filepath,
                features=values,
            ))
        return methods
