"""
Shared pytest fixtures for the keyward test suite.

Autouse fixtures below isolate tests from the host:
  - Audit logger -> in-memory handler (no records sent to the real syslog)
  - Diagnostics  -> ``keyward`` logger restored after CLI runs
"""

import logging
from pathlib import Path

import httpx
import pytest

FIXTURES = Path(__file__).parent / "fixtures"


class RecordingHandler(logging.Handler):
    """Collects formatted audit records."""

    def __init__(self):
        super().__init__()
        self.messages = []

    def emit(self, record):
        self.messages.append(self.format(record))


@pytest.fixture(autouse=True)
def _isolate_audit_logs(monkeypatch):
    """Point the global AuditLogger at an in-memory handler for every test.

    Without this, a test that matches a fingerprint would write
    ``Account ... logged in as ...`` records into the host's auth log.
    """
    import keyward.core.audit_log as audit_mod

    old_logger = audit_mod._audit_logger
    audit_mod._audit_logger = None

    recorder = RecordingHandler()
    orig_init = audit_mod.AuditLogger.__init__

    def patched_init(self, address=None, facility=None, handler=None):
        orig_init(self, handler=handler or recorder)

    monkeypatch.setattr(audit_mod.AuditLogger, "__init__", patched_init)

    yield recorder

    audit_mod._audit_logger = old_logger


@pytest.fixture
def audit_records(_isolate_audit_logs):
    """Messages the global audit logger emitted during the test."""
    return _isolate_audit_logs.messages


@pytest.fixture(autouse=True)
def _restore_keyward_logger():
    """Undo configure_logging() so caplog keeps seeing keyward records."""
    yield
    root = logging.getLogger("keyward")
    for h in list(root.handlers):
        root.removeHandler(h)
    root.setLevel(logging.NOTSET)
    root.propagate = True


@pytest.fixture
def fixtures_dir():
    return FIXTURES


@pytest.fixture
def key_fixture():
    """Loader for the signed key sets in tests/fixtures."""
    from keyward.keys.models import keys_from_json

    def load(name):
        return keys_from_json((FIXTURES / name).read_bytes())
    return load


@pytest.fixture
def fixture_body():
    """Raw JSON body of a fixture, as the authority would send it."""
    def load(name):
        return (FIXTURES / name).read_bytes()
    return load


@pytest.fixture
def trust_key():
    """Path (as str) of a trust key fixture."""
    def path(name):
        return str(FIXTURES / name)
    return path


class FakeAuthority:
    """In-process key authority behind an ``httpx.MockTransport``.

    Answers every request with ``status``/``body``, or raises ``error``.
    Requests are recorded in ``requests``.
    """

    def __init__(self):
        self.status = 200
        self.body = b"[]"
        self.error = None
        self.requests = []

    def respond(self, status=200, body=b"[]"):
        self.status, self.body, self.error = status, body, None

    def fail(self, error):
        self.error = error

    @property
    def last(self):
        return self.requests[-1]

    def __call__(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status, content=self.body)


@pytest.fixture
def authority(monkeypatch):
    """Route every httpx.Client the fetcher opens to a FakeAuthority."""
    fake = FakeAuthority()
    real_client = httpx.Client

    def client(**kwargs):
        kwargs["transport"] = httpx.MockTransport(fake)
        return real_client(**kwargs)

    monkeypatch.setattr("keyward.remote.fetcher.httpx.Client", client)
    return fake
