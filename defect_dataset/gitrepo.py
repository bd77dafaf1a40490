"""
Git history mining: fix commits, release tags and methods touched by fixes.
"""

import re
from typing import Iterable, Sequence

from pydriller import Git, ModificationType, Repository

from .config import TICKET_KEY_PATTERN, TAG_PATTERNS, SOURCE_EXTENSION
from .models import BugReport, Release, method_key

# Qualified names, varargs ellipsis and the punctuation of generic/array types
PARAM_TOKEN_PATTERN = re.compile(r'\.\.\.|[\w$]+(?:\.[\w$]+)*|[<>\[\],?&@()]')
PARAM_MODIFIERS = {'final'}


def _split_parameters(text: str) -> list[str]:
    """Split a parameter list on commas that are not inside generics"""
    params, depth, current = [], 0, []
    for ch in text:
        if ch == '<':
            depth += 1
        elif ch == '>':
            depth -= 1
        elif ch == ',' and depth == 0:
            params.append(''.join(current))
            current = []
            continue
        current.append(ch)
    params.append(''.join(current))
    return [p for p in params if p.strip()]


def _strip_annotations(tokens: list[str]) -> list[str]:
    kept, i = [], 0
    while i < len(tokens):
        if tokens[i] == '@':
            i += 2
            if i < len(tokens) and tokens[i] == '(':
                while i < len(tokens) and tokens[i] != ')':
                    i += 1
                i += 1
            continue
        kept.append(tokens[i])
        i += 1
    return kept


def _is_word(token: str) -> bool:
    return token == '?' or token[0].isalnum() or token[0] in '_$'


def _parameter_type(param: str) -> str:
    """
    Declared type of one parameter, e.g. 'final List < String > names' -> 'List<String>'.

    Varargs are written as arrays and C-style array suffixes on the name are
    moved onto the type.
    """
    tokens = [t for t in _strip_annotations(PARAM_TOKEN_PATTERN.findall(param))
              if t not in PARAM_MODIFIERS]
    name_at = max(i for i, t in enumerate(tokens) if _is_word(t) and t != '?')
    type_tokens = tokens[:name_at] + tokens[name_at + 1:]
    if not tokens[:name_at]:
        # Lone token: an unnamed type rather than a name
        type_tokens = tokens

    text = ''
    for prev, token in zip([None] + type_tokens, type_tokens):
        if token == '...':
            token = '[]'
        elif prev is not None and _is_word(prev) and _is_word(token):
            text += ' '
        text += token
    return text


def method_signature(method) -> str:
    """
    Signature of a pydriller method in snapshot form: name(Type, Type).

    pydriller reports Java methods as e.g. 'A::foo( int x , List < String > names )';
    the class qualifier and parameter names are dropped so the result matches
    the `signature` column of the method snapshots ('foo(int, List<String>)').
    """
    name = method.name.split('::')[-1]
    long_name = method.long_name
    params = long_name[long_name.find('(') + 1:long_name.rfind(')')]
    types = [_parameter_type(p) for p in _split_parameters(params)]
    return f"{name}({', '.join(types)})"


class GitRepository:
    """Read-only view of a local clone used to attribute bug fixes to methods"""

    def __init__(self, path: str, project_name: str, extension: str = SOURCE_EXTENSION):
        self.path = str(path)
        self.project_name = project_name
        self.extension = extension
        self.git = Git(self.path)

    def close(self):
        self.git.clear()

    def find_and_set_fix_commits(self, tickets: Iterable[BugReport]) -> int:
        """
        Link tickets to the most recent commit whose message mentions them.

        The commit's author date replaces the ticket's resolution date. Tickets
        that already have a fix commit are left alone.

        Returns:
            Number of tickets linked by this call
        """
        print("  Linking tickets to fix commits...", flush=True)
        by_key = {t.key: t for t in tickets}
        linked = 0

        for commit in Repository(self.path, order='reverse').traverse_commits():
            for key in TICKET_KEY_PATTERN.findall(commit.msg):
                ticket = by_key.get(key)
                if ticket is None or ticket.fix_commit_id is not None:
                    continue
                ticket.fix_commit_id = commit.hash
                ticket.resolution_date = commit.author_date.replace(tzinfo=None)
                linked += 1

        print(f"  Linked {linked}/{len(by_key)} tickets to fix commits", flush=True)
        return linked

    def find_release_commits(self, releases: Sequence[Release]) -> dict[str, str]:
        """Map release names to the commit hash of their tag (releases without a tag are omitted)"""
        tags = {tag.name: tag.commit.hexsha for tag in self.git.repo.tags}

        release_commits = {}
        for release in releases:
            for pattern in TAG_PATTERNS:
                tag = pattern.format(name=release.name, project=self.project_name.lower())
                if tag in tags:
                    release_commits[release.name] = tags[tag]
                    break

        print(f"  Resolved tags for {len(release_commits)}/{len(releases)} releases", flush=True)
        return release_commits

    def map_tickets_to_fixed_method_keys(self, tickets: Iterable[BugReport]) -> dict[str, tuple[str, ...]]:
        """Ticket key -> sorted filepath::signature keys of methods changed by its fix commit"""
        fixed = {}
        for ticket in tickets:
            if ticket.fix_commit_id is None:
                continue
            commit = self.git.get_commit(ticket.fix_commit_id)
            if not commit.parents:
                continue

            keys = set()
            for mod in commit.modified_files:
                if mod.change_type != ModificationType.MODIFY:
                    continue
                if not mod.filename.endswith(self.extension):
                    continue
                for method in mod.changed_methods:
                    keys.add(method_key(mod.new_path, method_signature(method)))
            fixed[ticket.key] = tuple(sorted(keys))

        return fixed
