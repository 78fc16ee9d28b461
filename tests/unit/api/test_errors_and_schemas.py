"""Unit tests for HTTP error mapping and response projections."""

import asyncio
import json
from datetime import UTC, datetime, timedelta

import pytest
from fastapi import Request
from fastapi.exceptions import RequestValidationError

from src.circulation.api.http.errors import (
    LendingRejected,
    ensure_ok,
    lending_rejected_handler,
    status_for,
    unwrap,
    validation_error_handler,
)
from src.circulation.api.http.schemas import copy_to_response, entry_to_response
from src.circulation.core.errors import ErrorKind, LendingError
from src.circulation.core.result import Ok, fail
from src.circulation.entities.catalog import Copy
from src.circulation.entities.ledger import LedgerAction, LedgerEntry

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


class TestStatusMapping:
    @pytest.mark.parametrize(
        ("kind", "status"),
        [
            (ErrorKind.INVALID_ARGUMENT, 400),
            (ErrorKind.NOT_FOUND, 404),
            (ErrorKind.CONFLICTING_METADATA, 409),
            (ErrorKind.DUPLICATE_EMAIL, 409),
            (ErrorKind.NOT_AVAILABLE, 409),
            (ErrorKind.NO_AVAILABLE_COPY, 409),
            (ErrorKind.NOT_ON_LOAN, 409),
            (ErrorKind.COPY_ON_LOAN, 409),
            (ErrorKind.HAS_ACTIVE_LOANS, 409),
        ],
    )
    def test_status_for(self, kind, status):
        assert status_for(kind) == status

    def test_unwrap(self):
        assert unwrap(Ok(3)) == 3
        with pytest.raises(LendingRejected) as excinfo:
            unwrap(fail(ErrorKind.NOT_FOUND, "gone"))
        assert excinfo.value.error.kind is ErrorKind.NOT_FOUND

    def test_ensure_ok(self):
        ensure_ok(Ok(None))
        with pytest.raises(LendingRejected):
            ensure_ok(fail(ErrorKind.COPY_ON_LOAN, "on loan"))


class TestHandlers:
    @pytest.fixture
    def request_(self):
        request = Request({"type": "http", "headers": [], "state": {}})
        request.state.request_id = "req-1"
        return request

    def test_rejection_becomes_error_body(self, request_):
        exc = LendingRejected(LendingError(ErrorKind.NOT_AVAILABLE, "Copy 1 is on loan"))

        response = asyncio.run(lending_rejected_handler(request_, exc))

        assert response.status_code == 409
        assert response.headers["X-Request-ID"] == "req-1"
        assert json.loads(response.body) == {
            "error": "NotAvailable",
            "detail": "Copy 1 is on loan",
            "request_id": "req-1",
        }

    def test_validation_errors_are_invalid_argument(self, request_):
        exc = RequestValidationError([{"loc": ("query", "limit"), "msg": "too small", "type": "value_error"}])

        response = asyncio.run(validation_error_handler(request_, exc))

        assert response.status_code == 400
        body = json.loads(response.body)
        assert body["error"] == "InvalidArgument"
        assert body["detail"] == [{"loc": ["query", "limit"], "msg": "too small"}]


class TestProjections:
    def test_copy_availability_is_derived(self):
        copy = Copy(id=1, isbn="9780131103627", title="T", author="A", borrower_id=7)

        response = copy_to_response(copy)

        assert response.available is False
        assert response.borrower_id == 7

    def test_entry_due_state_is_computed_at_now(self):
        entry = LedgerEntry(
            id=5,
            copy_id=1,
            borrower_id=7,
            isbn="9780131103627",
            action=LedgerAction.BORROWED,
            action_time=NOW - timedelta(days=20),
            due_date=NOW - timedelta(days=6),
        )

        response = entry_to_response(entry, NOW)

        assert response.action == "BORROWED"
        assert response.overdue is True
        assert response.days_until_due == -6
