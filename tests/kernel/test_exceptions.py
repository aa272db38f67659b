"""Tests for the sessionfly exception hierarchy."""

from sessionfly.kernel.exceptions import (
    BusinessException,
    InfrastructureException,
    PersistenceException,
    SessionAlreadyStartedException,
    SessionFlyException,
    SessionNotStartedException,
)


class TestSessionFlyException:
    def test_basic_creation(self):
        exc = SessionFlyException("something went wrong")
        assert str(exc) == "something went wrong"
        assert exc.code is None
        assert exc.context == {}

    def test_with_code_and_context(self):
        exc = PersistenceException("write failed", code="SESSION_WRITE_FAILED", context={"session_id": "abc"})
        assert exc.code == "SESSION_WRITE_FAILED"
        assert exc.context["session_id"] == "abc"

    def test_context_not_shared_between_instances(self):
        exc = SessionFlyException("test")
        exc.context["key"] = "value"
        assert SessionFlyException("test2").context == {}


class TestSessionErrors:
    def test_not_started_has_default_message_and_code(self):
        exc = SessionNotStartedException()
        assert str(exc) == "Session has not been started"
        assert exc.code == "SESSION_NOT_STARTED"

    def test_already_started_keeps_context(self):
        exc = SessionAlreadyStartedException(context={"session_id": "abc"})
        assert exc.code == "SESSION_ALREADY_STARTED"
        assert exc.context == {"session_id": "abc"}


class TestExceptionHierarchy:
    def test_usage_errors_are_business(self):
        assert issubclass(SessionNotStartedException, BusinessException)
        assert issubclass(SessionAlreadyStartedException, BusinessException)

    def test_persistence_is_infrastructure(self):
        assert issubclass(PersistenceException, InfrastructureException)

    def test_catch_all(self):
        for exc in (SessionNotStartedException(), PersistenceException("boom")):
            try:
                raise exc
            except SessionFlyException as caught:
                assert caught is exc
