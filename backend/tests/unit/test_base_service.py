from unittest.mock import Mock

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import ServiceException, ValidationException
from app.services.base import BaseService


class _ExampleService(BaseService):
    @BaseService.measure_operation("do_work")
    def do_work(self, fail: bool = False) -> str:
        if fail:
            raise ValidationException("nope", code="NOPE")
        return "done"


def test_transaction_commits_on_success():
    db = Mock()
    service = _ExampleService(db)

    with service.transaction():
        pass

    db.commit.assert_called_once()
    db.rollback.assert_not_called()


def test_transaction_wraps_database_errors():
    db = Mock()
    service = _ExampleService(db)

    with pytest.raises(ServiceException) as exc_info:
        with service.transaction():
            raise OperationalError("UPDATE session_slots", {}, Exception("database is locked"))

    assert "Database operation failed" in exc_info.value.message
    db.rollback.assert_called_once()
    db.commit.assert_not_called()


def test_transaction_propagates_domain_errors_unchanged():
    db = Mock()
    service = _ExampleService(db)

    with pytest.raises(ValidationException):
        with service.transaction():
            raise ValidationException("bad input", code="BAD")

    db.rollback.assert_called_once()


def test_measure_operation_records_success_and_failure():
    service = _ExampleService(Mock())

    assert service.do_work() == "done"
    with pytest.raises(ValidationException):
        service.do_work(fail=True)

    metrics = service.get_metrics()["do_work"]
    assert metrics["success_count"] >= 1
    assert metrics["failure_count"] >= 1
