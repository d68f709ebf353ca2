"""Stand-ins for the Playwright page, browser driver and stores used in tests."""

from __future__ import annotations

from contextlib import contextmanager
from types import SimpleNamespace

from login_probe.core.errors import PersistenceError  # type: ignore[import]
from login_probe.core.storage import MemoryStore  # type: ignore[import]


class FakeLocator:
    def __init__(self, count=0, elements=()):
        self._count = count
        self._elements = list(elements)

    def count(self):
        return self._count

    def all(self):
        return list(self._elements)


class FakeElement:
    """Answers the signal-extraction script with a fixed attribute mapping."""

    def __init__(self, **attributes):
        self.attributes = attributes

    def evaluate(self, _script):
        return dict(self.attributes)


class FakeLivePage:
    """Minimal rendered page: ``locator`` answers from canned elements and counts."""

    def __init__(self, elements=None, counts=None, content="", title=""):
        self.elements = elements or {}
        self.counts = counts or {}
        self._content = content
        self._title = title

    def locator(self, selector):
        elements = self.elements.get(selector, [])
        return FakeLocator(self.counts.get(selector, len(elements)), elements)

    def content(self):
        return self._content

    def title(self):
        return self._title


class FakeBrowserPage:
    """Mirrors ``BrowserPage``; ``present`` lists the selectors that resolve."""

    def __init__(
        self,
        present=(),
        *,
        url="https://example.com/login",
        final_url=None,
        content="",
        logout=False,
        navigates=True,
        live_page=None,
    ):
        self.page = live_page if live_page is not None else SimpleNamespace()
        self.present = list(present)
        self.url = url
        self.final_url = final_url
        self._content = content
        self.logout = logout
        self.navigates = navigates
        self.response_status = 200
        self.response_headers = {"content-type": "text/html"}
        self.queries = []
        self.typed = []
        self.clicked = []
        self.closed = False

    def query_any(self, selectors):
        self.queries.append(list(selectors))
        for selector in selectors:
            if selector in self.present:
                return selector
        return None

    def type_into(self, element, text):
        self.typed.append((element, text))

    def click_and_wait(self, element, timeout_ms):
        self.clicked.append((element, timeout_ms))
        if self.final_url:
            self.url = self.final_url
        return self.navigates

    def content(self):
        return self._content

    def cookies(self):
        return [{"name": "sid", "value": "abc"}]

    def has_logout_affordance(self):
        return self.logout

    def close(self):
        self.closed = True


class FakeDriver:
    """Counts opened and released contexts so leaks can be asserted."""

    def __init__(self, page=None, error=None):
        self.page = page or FakeBrowserPage()
        self.error = error
        self.opened = 0
        self.released = 0
        self.calls = []

    @contextmanager
    def open_page(self, url, *, timeout_ms, user_agent=None):
        self.opened += 1
        self.calls.append({"url": url, "timeout_ms": timeout_ms, "user_agent": user_agent})
        try:
            if self.error is not None:
                raise self.error
            yield self.page
        finally:
            self.page.close()
            self.released += 1


class RecordingStore(MemoryStore):
    """Memory store that keeps every update patch in order."""

    def __init__(self):
        super().__init__()
        self.patches = []

    def update(self, table, record_id, patch):
        self.patches.append(dict(patch))
        return super().update(table, record_id, patch)


class FailingStore(MemoryStore):
    """Rejects writes once ``fail_after`` updates have gone through."""

    def __init__(self, *, fail_inserts=False, fail_after=None):
        super().__init__()
        self.fail_inserts = fail_inserts
        self.fail_after = fail_after
        self.updates = 0

    def insert_many(self, table, records):
        if self.fail_inserts:
            raise PersistenceError("database is unavailable")
        return super().insert_many(table, records)

    def update(self, table, record_id, patch):
        if self.fail_after is not None and self.updates >= self.fail_after:
            raise PersistenceError("database is unavailable")
        self.updates += 1
        return super().update(table, record_id, patch)
