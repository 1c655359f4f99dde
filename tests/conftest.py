import pytest

from second_class.api import UNLIMITED


class FakeClient:
    """In-memory stand-in for APIClient recording every call."""

    def __init__(self):
        self.pages = {}
        self.results = {}
        self.submissions = {}
        self.calls = []

    def page_search(self, endpoint, params=None, max_results=UNLIMITED, page_size=20):
        self.calls.append(("page_search", endpoint, dict(params or {})))
        outcome = self.pages[endpoint]
        if isinstance(outcome, Exception):
            raise outcome
        if max_results == UNLIMITED:
            return list(outcome)
        return list(outcome[:max_results])

    def fetch_one(self, endpoint, params=None):
        self.calls.append(("fetch_one", endpoint, dict(params or {})))
        key = (endpoint, (params or {}).get("id"))
        outcome = self.results[key] if key in self.results else self.results[endpoint]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def submit(self, endpoint, method="post", params=None, body=None):
        self.calls.append(("submit", endpoint, body))
        outcome = self.submissions[endpoint]
        if isinstance(outcome, list):
            outcome = outcome.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def called(self, kind, prefix=""):
        return [c for c in self.calls if c[0] == kind and c[1].startswith(prefix)]


@pytest.fixture
def client():
    return FakeClient()
