import pytest
from sqlalchemy.exc import OperationalError

from retailer_desk.core.config import settings
from retailer_desk.core.db_retry import with_db_retry


class DummyOrig(Exception):
    def __init__(self, code: int, message: str, sqlstate: str | None = None):
        super().__init__(message)
        self.sqlstate = sqlstate
        self.args = (code, message)


class DummySession:
    def __init__(self):
        self.rollback_calls = 0

    async def rollback(self):
        self.rollback_calls += 1


@pytest.fixture
def fast_retries(monkeypatch):
    monkeypatch.setattr(settings, "DB_RETRY_ATTEMPTS", 2)
    monkeypatch.setattr(settings, "DB_RETRY_BASE_DELAY", 0.0)
    monkeypatch.setattr(settings, "DB_RETRY_JITTER", 0.0)


@pytest.mark.anyio
async def test_deadlock_is_retried(fast_retries):
    session = DummySession()
    calls = {"count": 0}

    async def flaky_operation():
        calls["count"] += 1
        if calls["count"] == 1:
            raise OperationalError("stmt", {}, DummyOrig(1213, "deadlock"))
        return "ok"

    result = await with_db_retry(session, flaky_operation)

    assert result == "ok"
    assert calls["count"] == 2
    assert session.rollback_calls == 1


@pytest.mark.anyio
async def test_retries_stop_after_configured_attempts(fast_retries):
    session = DummySession()
    calls = {"count": 0}

    async def always_locked():
        calls["count"] += 1
        raise OperationalError("stmt", {}, DummyOrig(1205, "Lock wait timeout exceeded"))

    with pytest.raises(OperationalError):
        await with_db_retry(session, always_locked)

    assert calls["count"] == 2
    assert session.rollback_calls == 2


@pytest.mark.anyio
async def test_other_errors_are_not_retried(fast_retries):
    session = DummySession()
    calls = {"count": 0}

    async def broken_operation():
        calls["count"] += 1
        raise OperationalError("stmt", {}, DummyOrig(1054, "Unknown column"))

    with pytest.raises(OperationalError):
        await with_db_retry(session, broken_operation)

    assert calls["count"] == 1
    assert session.rollback_calls == 0
