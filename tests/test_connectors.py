#!/usr/bin/env python3
"""
Tests for the Jira, git and snapshot collaborators and the generation pipeline.

HTTP sessions are mocked; git tests mock pydriller except where a throwaway
repository is built in tmp_path.

Usage:
    python -m pytest tests/test_connectors.py -v
"""

import shutil
import sys
from datetime import date, datetime, timezone
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pandas as pd
import pytest
import requests

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from defect_dataset.models import BugReport, Release


def response(payload):
    resp = MagicMock()
    resp.status_code = 200
    resp.json.return_value = payload
    return resp


def timeline():
    return [
        Release("R1", date(2020, 1, 1), 1),
        Release("R2", date(2020, 2, 1), 2),
        Release("R3", date(2020, 3, 1), 3),
    ]


# =============================================================================
# JIRA TESTS
# =============================================================================

def test_parse_jira_datetime():
    """Jira timestamps become naive wall-clock datetimes"""
    from defect_dataset.jira import parse_jira_datetime

    assert parse_jira_datetime("2013-05-14T09:47:52.000+0000") == datetime(2013, 5, 14, 9, 47, 52)
    assert parse_jira_datetime("2013-05-14T09:47:52.000+0200") == datetime(2013, 5, 14, 9, 47, 52)


def test_jira_client_init():
    """JiraClient should initialize without network access"""
    from defect_dataset.jira import JiraClient

    client = JiraClient("BOOKKEEPER", base_url="https://jira.example.org/")
    assert client.project_key == "BOOKKEEPER"
    assert client.base_url == "https://jira.example.org"
    assert client.api_calls == 0


def test_fetch_releases_builds_timeline():
    """Only released versions with a date are kept, indexed by date"""
    from defect_dataset.jira import JiraClient

    session = MagicMock()
    session.get.return_value = response([
        {'name': '2.0', 'released': True, 'releaseDate': '2021-01-10'},
        {'name': '1.0', 'released': True, 'releaseDate': '2020-01-10'},
        {'name': '3.0', 'released': False, 'releaseDate': '2022-01-10'},
        {'name': '1.5', 'released': True},
    ])

    releases = JiraClient("PROJ", session=session).fetch_releases()

    assert [(r.name, r.index) for r in releases] == [("1.0", 1), ("2.0", 2)]
    assert releases[0].date == date(2020, 1, 10)
    url = session.get.call_args[0][0]
    assert url.endswith("/rest/api/2/project/PROJ/versions")


def test_fetch_bug_tickets_paginates_and_skips_malformed():
    """Pages are fetched until total is reached; bad issues are skipped"""
    from defect_dataset.jira import JiraClient

    session = MagicMock()
    session.get.side_effect = [
        response({'total': 3, 'issues': [
            {'key': 'PROJ-1', 'fields': {
                'created': '2020-01-05T10:00:00.000+0000',
                'resolutiondate': '2020-02-05T10:00:00.000+0000',
                'versions': [{'name': '1.0'}, {'name': '1.1'}],
            }},
            {'key': 'PROJ-2', 'fields': {
                'created': '2020-01-06T10:00:00.000+0000',
                'resolutiondate': None,
            }},
        ]}),
        response({'total': 3, 'issues': [
            {'key': 'PROJ-3'},
        ]}),
    ]

    client = JiraClient("PROJ", session=session)
    tickets = client.fetch_bug_tickets()

    assert [t.key for t in tickets] == ["PROJ-1", "PROJ-2"]
    assert tickets[0].creation_date == datetime(2020, 1, 5, 10, 0)
    assert tickets[0].resolution_date == datetime(2020, 2, 5, 10, 0)
    assert tickets[0].affected_versions == frozenset({"1.0", "1.1"})
    assert tickets[1].resolution_date is None
    assert tickets[1].affected_versions == frozenset()

    assert session.get.call_count == 2
    second_params = session.get.call_args_list[1][1]['params']
    assert second_params['startAt'] == 2
    assert "issuetype = Bug" in second_params['jql']
    assert client.get_stats() == {'api_calls': 2, 'skipped_tickets': 1}


def test_fetch_bug_tickets_stops_on_empty_page():
    """An empty page ends pagination"""
    from defect_dataset.jira import JiraClient

    session = MagicMock()
    session.get.return_value = response({'total': 50, 'issues': []})

    assert JiraClient("PROJ", session=session).fetch_bug_tickets() == []
    assert session.get.call_count == 1


def test_jira_http_error_propagates():
    """Non-200 responses raise instead of yielding partial data"""
    from defect_dataset.jira import JiraClient

    resp = response([])
    resp.raise_for_status.side_effect = requests.HTTPError("503 Server Error")
    session = MagicMock()
    session.get.return_value = resp

    with pytest.raises(requests.HTTPError):
        JiraClient("PROJ", session=session).fetch_releases()


# =============================================================================
# GIT TESTS
# =============================================================================

@pytest.fixture
def fake_git(monkeypatch):
    """Replace pydriller's Git with a mock and return the instance"""
    git = MagicMock()
    monkeypatch.setattr("defect_dataset.gitrepo.Git", MagicMock(return_value=git))
    return git


def test_find_and_set_fix_commits(fake_git, monkeypatch):
    """The newest commit mentioning a ticket becomes its fix commit"""
    from defect_dataset.gitrepo import GitRepository

    commits = [
        SimpleNamespace(hash="c3", msg="PROJ-1 follow-up",
                        author_date=datetime(2020, 5, 3, 12, 0, tzinfo=timezone.utc)),
        SimpleNamespace(hash="c2", msg="Fix PROJ-1 and PROJ-2",
                        author_date=datetime(2020, 5, 2, 12, 0, tzinfo=timezone.utc)),
        SimpleNamespace(hash="c1", msg="OTHER-9 unrelated", author_date=datetime(2020, 5, 1)),
    ]
    repo_cls = MagicMock()
    repo_cls.return_value.traverse_commits.return_value = commits
    monkeypatch.setattr("defect_dataset.gitrepo.Repository", repo_cls)

    tickets = [
        BugReport(key="PROJ-1", creation_date=datetime(2020, 1, 1)),
        BugReport(key="PROJ-2", creation_date=datetime(2020, 1, 1)),
        BugReport(key="PROJ-3", creation_date=datetime(2020, 1, 1)),
    ]
    linked = GitRepository("/tmp/repo", "PROJ").find_and_set_fix_commits(tickets)

    assert linked == 2
    assert tickets[0].fix_commit_id == "c3"
    assert tickets[0].resolution_date == datetime(2020, 5, 3, 12, 0)
    assert tickets[1].fix_commit_id == "c2"
    assert tickets[2].fix_commit_id is None
    assert repo_cls.call_args[1]['order'] == 'reverse'


def test_find_release_commits_tries_tag_patterns(fake_git):
    """Release names are matched against common tag conventions"""
    from defect_dataset.gitrepo import GitRepository

    fake_git.repo.tags = [
        SimpleNamespace(name="v1.0", commit=SimpleNamespace(hexsha="aaa")),
        SimpleNamespace(name="proj-2.0", commit=SimpleNamespace(hexsha="bbb")),
        SimpleNamespace(name="unrelated", commit=SimpleNamespace(hexsha="ccc")),
    ]
    releases = [
        Release("1.0", date(2020, 1, 1), 1),
        Release("2.0", date(2020, 6, 1), 2),
        Release("3.0", date(2021, 1, 1), 3),
    ]

    found = GitRepository("/tmp/repo", "PROJ").find_release_commits(releases)

    assert found == {"1.0": "aaa", "2.0": "bbb"}


def test_map_tickets_to_fixed_method_keys(fake_git):
    """Only methods changed in modified source files are attributed"""
    from pydriller import ModificationType
    from defect_dataset.gitrepo import GitRepository

    def mod(change_type, new_path, methods):
        return SimpleNamespace(
            change_type=change_type,
            new_path=new_path,
            filename=new_path.rsplit('/', 1)[-1],
            changed_methods=[SimpleNamespace(name=n, long_name=ln) for n, ln in methods],
        )

    fix = SimpleNamespace(parents=["p1"], modified_files=[
        mod(ModificationType.MODIFY, "src/A.java", [("A::foo", "A::foo( int x)"), ("A::bar", "A::bar( )")]),
        mod(ModificationType.ADD, "src/New.java", [("New::init", "New::init( )")]),
        mod(ModificationType.MODIFY, "docs/README.md", [("ignored", "ignored( )")]),
    ])
    root = SimpleNamespace(parents=[], modified_files=[
        mod(ModificationType.MODIFY, "src/A.java", [("A::foo", "A::foo( int x)")]),
    ])
    fake_git.get_commit.side_effect = lambda sha: {"fix": fix, "root": root}[sha]

    tickets = [
        BugReport(key="PROJ-1", creation_date=datetime(2020, 1, 1), fix_commit_id="fix"),
        BugReport(key="PROJ-2", creation_date=datetime(2020, 1, 1), fix_commit_id="root"),
        BugReport(key="PROJ-3", creation_date=datetime(2020, 1, 1)),
    ]
    fixed = GitRepository("/tmp/repo", "PROJ").map_tickets_to_fixed_method_keys(tickets)

    assert fixed == {"PROJ-1": ("src/A.java::bar()", "src/A.java::foo(int)")}


@pytest.mark.parametrize("name, long_name, expected", [
    ("A::foo", "A::foo( int x)", "foo(int)"),
    ("A::bar", "A::bar( )", "bar()"),
    ("A::A", "A::A( String name , int [ ] counts)", "A(String, int[])"),
    ("Outer::Inner::run", "Outer::Inner::run( final List < String > items , Map < String , Integer > m)",
     "run(List<String>, Map<String,Integer>)"),
    ("A::log", "A::log( String fmt , Object ... args)", "log(String, Object[])"),
    ("A::sum", "A::sum( @ Nullable java.util.List < ? extends Number > xs , long ys [ ])",
     "sum(java.util.List<? extends Number>, long[])"),
])
def test_method_signature_drops_class_and_parameter_names(name, long_name, expected):
    """pydriller's qualified long names reduce to name(Type, Type)"""
    from defect_dataset.gitrepo import method_signature

    assert method_signature(SimpleNamespace(name=name, long_name=long_name)) == expected


JAVA_BEFORE = """public class A {
    public int foo(int x) {
        return x;
    }

    public int bar() {
        return 0;
    }
}
"""

JAVA_AFTER = JAVA_BEFORE.replace("return x;", "return x + 1;")


@pytest.mark.skipif(shutil.which("git") is None, reason="git executable not available")
def test_fixed_method_keys_match_snapshot_keys(tmp_path):
    """A fix in a real repository yields the same key as the method's snapshot row"""
    from git import Actor, Repo
    from defect_dataset.gitrepo import GitRepository
    from defect_dataset.snapshots import SnapshotMethodSource

    workdir = tmp_path / "repo"
    source = workdir / "src" / "A.java"
    source.parent.mkdir(parents=True)
    repo = Repo.init(workdir)
    author = Actor("Dev", "dev@example.org")

    source.write_text(JAVA_BEFORE)
    repo.index.add([str(source)])
    repo.index.commit("Initial import", author=author, committer=author)
    source.write_text(JAVA_AFTER)
    repo.index.add([str(source)])
    repo.index.commit("PROJ-1 fix foo", author=author, committer=author)

    ticket = BugReport(key="PROJ-1", creation_date=datetime(2020, 1, 1))
    repository = GitRepository(str(workdir), "PROJ")
    try:
        assert repository.find_and_set_fix_commits([ticket]) == 1
        fixed = repository.map_tickets_to_fixed_method_keys([ticket])
    finally:
        repository.close()

    snapshot = tmp_path / "R1.csv"
    snapshot.write_text(
        "filepath,signature,CyclomaticComplexity\n"
        "src/A.java,foo(int),2\n"
        "src/A.java,bar(),1\n"
    )
    foo, bar = SnapshotMethodSource(tmp_path).methods_for_release(snapshot)

    assert ticket.fix_commit_id == repo.head.commit.hexsha
    assert fixed == {"PROJ-1": (foo.key,)}
    assert bar.key not in fixed["PROJ-1"]


# =============================================================================
# SNAPSHOT TESTS
# =============================================================================

def test_snapshot_handles_by_name_or_commit(tmp_path):
    """Snapshot files are found by release name, then by tag commit"""
    from defect_dataset.snapshots import SnapshotMethodSource

    (tmp_path / "R1.csv").write_text("filepath,signature\n")
    (tmp_path / "abc123.csv").write_text("filepath,signature\n")

    handles = SnapshotMethodSource(tmp_path).handles_for(timeline(), {"R2": "abc123", "R3": "zzz"})

    assert handles == {"R1": tmp_path / "R1.csv", "R2": tmp_path / "abc123.csv"}


def test_snapshot_methods_for_release(tmp_path):
    """Rows become AnalyzedMethods; blank metrics are left out of the features"""
    from defect_dataset.snapshots import SnapshotMethodSource

    path = tmp_path / "R1.csv"
    path.write_text(
        "filepath,signature,identity,CyclomaticComplexity,avgChurn\n"
        "src/A.java,foo(int),m-1,3,1.25\n"
        "src/B.java,bar(),,2,\n"
    )

    methods = SnapshotMethodSource(tmp_path).methods_for_release(path)

    assert [m.key for m in methods] == ["src/A.java::foo(int)", "src/B.java::bar()"]
    assert methods[0].identity == "m-1"
    assert methods[1].identity == "src/B.java::bar()"
    assert methods[0].feature('CyclomaticComplexity') == 3
    assert methods[0].feature('avgChurn') == pytest.approx(1.25)
    assert 'avgChurn' not in methods[1].features


def test_snapshot_missing_columns(tmp_path):
    """Snapshots must name the file and signature of each method"""
    from defect_dataset.snapshots import SnapshotMethodSource

    path = tmp_path / "R1.csv"
    path.write_text("signature,CyclomaticComplexity\nfoo(),2\n")

    with pytest.raises(ValueError):
        SnapshotMethodSource(tmp_path).methods_for_release(path)


# =============================================================================
# PIPELINE TESTS
# =============================================================================

class FakeTracker:
    def __init__(self, error=None):
        self.error = error

    def fetch_releases(self):
        if self.error:
            raise self.error
        return timeline()

    def fetch_bug_tickets(self):
        return [BugReport(
            key="PROJ-1",
            creation_date=datetime(2020, 2, 15),
            affected_versions=frozenset({"R1"}),
        )]


class FakeRepository:
    def find_and_set_fix_commits(self, tickets):
        for t in tickets:
            t.fix_commit_id = "fix"
            t.resolution_date = datetime(2020, 3, 15)
        return len(tickets)

    def map_tickets_to_fixed_method_keys(self, tickets):
        return {t.key: ("src/A.java::foo(int)",) for t in tickets}

    def find_release_commits(self, releases):
        return {r.name: f"sha-{r.name}" for r in releases}


def test_generate_dataset_end_to_end(tmp_path):
    """Tickets, fixes and snapshots combine into a labeled CSV"""
    from defect_dataset.pipeline import generate_dataset
    from defect_dataset.snapshots import SnapshotMethodSource

    snapshots = tmp_path / "snapshots"
    snapshots.mkdir()
    content = (
        "filepath,signature,CyclomaticComplexity,ParameterCount,NR\n"
        "src/A.java,foo(int),3,2,1\n"
        "src/B.java,bar(),2,1,0\n"
    )
    (snapshots / "R1.csv").write_text(content)
    (snapshots / "sha-R2.csv").write_text(content)

    report = generate_dataset(
        "PROJ", FakeTracker(), FakeRepository(), SnapshotMethodSource(snapshots),
        output_dir=tmp_path / "datasets", cutoff_fraction=1.0,
    )

    assert report.releases_skipped == ["R3"]
    assert report.rows == 4
    assert report.buggy_rows == 2
    assert 'CodeSmells' in report.dropped_columns

    df = pd.read_csv(tmp_path / "datasets" / "PROJ.csv", dtype=str)
    assert list(df.columns) == report.columns
    labels = dict(zip(df['MethodName'] + '@' + df['Release'], df['IsBuggy']))
    assert labels == {
        "src/A.java/foo(int)@R1": "yes",
        "src/B.java/bar()@R1": "no",
        "src/A.java/foo(int)@R2": "yes",
        "src/B.java/bar()@R2": "no",
    }


def test_generate_dataset_wraps_failures(tmp_path):
    """Collaborator failures surface as one error naming the project"""
    from defect_dataset.pipeline import DatasetGenerationError, generate_dataset
    from defect_dataset.snapshots import SnapshotMethodSource

    cause = requests.ConnectionError("jira unreachable")
    output = tmp_path / "datasets"

    with pytest.raises(DatasetGenerationError) as excinfo:
        generate_dataset(
            "PROJ", FakeTracker(error=cause), FakeRepository(),
            SnapshotMethodSource(tmp_path), output_dir=output,
        )

    assert excinfo.value.project == "PROJ"
    assert excinfo.value.__cause__ is cause
    assert "PROJ" in str(excinfo.value)
    assert not output.exists()


def test_generate_dataset_wraps_unknown_commit(tmp_path):
    """A fix commit missing from the object database is reported like other git failures"""
    from gitdb.exc import BadName
    from defect_dataset.pipeline import DatasetGenerationError, generate_dataset
    from defect_dataset.snapshots import SnapshotMethodSource

    class MissingCommitRepository(FakeRepository):
        def map_tickets_to_fixed_method_keys(self, tickets):
            raise BadName("deadbeef")

    with pytest.raises(DatasetGenerationError) as excinfo:
        generate_dataset(
            "PROJ", FakeTracker(), MissingCommitRepository(),
            SnapshotMethodSource(tmp_path), output_dir=tmp_path / "datasets",
        )

    assert isinstance(excinfo.value.__cause__, BadName)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
