"""
Jira REST API integration for release timelines and bug tickets.
"""

from datetime import date, datetime

import requests

from .config import (
    JIRA_URL,
    JIRA_PAGE_SIZE,
    JIRA_TIMEOUT,
    JIRA_DATE_FORMAT,
    BUG_JQL,
)
from .models import BugReport, Release
from .releases import build_release_timeline


def parse_jira_datetime(value: str) -> datetime:
    """Parse a Jira timestamp into a naive wall-clock datetime"""
    return datetime.strptime(value, JIRA_DATE_FORMAT).replace(tzinfo=None)


class JiraClient:
    """Fetch released versions and fixed bug tickets for one Jira project"""

    def __init__(self, project_key: str, base_url: str = JIRA_URL, session: requests.Session = None):
        self.project_key = project_key
        self.base_url = base_url.rstrip('/')
        self.api_calls = 0
        self.skipped_tickets = 0

        if session:
            self.session = session
        else:
            self.session = requests.Session()
            self.session.headers['Accept'] = 'application/json'
            self.session.headers['User-Agent'] = 'defect-dataset'

    def _get(self, path: str, params: dict = None) -> dict | list:
        resp = self.session.get(f'{self.base_url}{path}', params=params, timeout=JIRA_TIMEOUT)
        self.api_calls += 1
        resp.raise_for_status()
        return resp.json()

    def fetch_releases(self) -> list[Release]:
        """Released versions with a release date, indexed chronologically from 1"""
        print(f"  Fetching releases for {self.project_key}...", flush=True)
        versions = self._get(f'/rest/api/2/project/{self.project_key}/versions')

        raw = [
            (v['name'], date.fromisoformat(v['releaseDate']))
            for v in versions
            if v.get('released') and v.get('releaseDate')
        ]
        releases = build_release_timeline(raw)
        print(f"  Found {len(releases)} releases", flush=True)
        return releases

    def fetch_bug_tickets(self) -> list[BugReport]:
        """All resolved/closed, fixed bug tickets, oldest first"""
        print(f"  Fetching bug tickets for {self.project_key} (this may take a while)...", flush=True)
        tickets = []
        start_at = 0

        while True:
            data = self._get('/rest/api/2/search', params={
                'jql': BUG_JQL.format(key=self.project_key),
                'fields': 'key,created,resolutiondate,versions',
                'startAt': start_at,
                'maxResults': JIRA_PAGE_SIZE,
            })
            issues = data.get('issues', [])
            if not issues:
                break

            for issue in issues:
                ticket = self._parse_ticket(issue)
                if ticket:
                    tickets.append(ticket)

            start_at += len(issues)
            total = data.get('total', start_at)
            print(f"    -> Fetched {start_at} of {total} tickets", flush=True)
            if start_at >= total:
                break

        print(f"  Total valid bug tickets: {len(tickets)}", flush=True)
        return tickets

    def _parse_ticket(self, issue: dict) -> BugReport | None:
        """Build a BugReport from a search hit, or None if it is malformed"""
        try:
            key = issue['key']
            fields = issue['fields']
            created = fields['created']
            if not key or not created:
                return None

            resolved = fields.get('resolutiondate')
            return BugReport(
                key=key,
                creation_date=parse_jira_datetime(created),
                resolution_date=parse_jira_datetime(resolved) if resolved else None,
                affected_versions=frozenset(v['name'] for v in fields.get('versions') or []),
            )
        except (KeyError, TypeError, ValueError) as e:
            self.skipped_tickets += 1
            print(f"  WARNING: Skipping malformed ticket in {self.project_key}: {e!r}", flush=True)
            return None

    def get_stats(self) -> dict:
        """Return API usage statistics"""
        return {
            'api_calls': self.api_calls,
            'skipped_tickets': self.skipped_tickets,
        }
