# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.
"""Unit tests for the error taxonomy and its HTTP rendering."""

import json

import pytest
from starlette.requests import Request

from comptoir.api.errors import GENERIC_FAILURE_MESSAGE, comptoir_error_handler
from comptoir.core.errors import (
    AuthorizationError,
    ComptoirError,
    DataIntegrityError,
    NotFoundError,
    UpstreamServiceError,
    ValidationError,
)


def _request(trace_id=None):
    scope = {"type": "http", "method": "GET", "path": "/api/chat", "headers": [], "query_string": b""}
    request = Request(scope)
    if trace_id:
        request.state.trace_id = trace_id
    return request


class TestTaxonomy:
    @pytest.mark.parametrize("cls,status,code", [
        (ValidationError, 400, "VALIDATION_ERROR"),
        (AuthorizationError, 403, "TENANT_MISMATCH"),
        (NotFoundError, 404, "NOT_FOUND"),
        (UpstreamServiceError, 503, "UPSTREAM_UNAVAILABLE"),
        (DataIntegrityError, 500, "DATA_INTEGRITY"),
    ])
    def test_status_and_code(self, cls, status, code):
        err = cls("boom")
        assert isinstance(err, ComptoirError)
        assert err.status_code == status
        assert err.code == code
        assert err.trace_id

    def test_overrides(self):
        err = ComptoirError("x", code="CUSTOM", status_code=418, details={"a": 1})
        assert (err.code, err.status_code, err.details) == ("CUSTOM", 418, {"a": 1})


class TestErrorHandler:
    @pytest.mark.asyncio
    async def test_client_error_keeps_message(self):
        err = ValidationError("Invalid conversation id", details={"conversation_id": "x"})
        resp = await comptoir_error_handler(_request("trace-1"), err)
        body = json.loads(resp.body)
        assert resp.status_code == 400
        assert body == {
            "code": "VALIDATION_ERROR",
            "message": "Invalid conversation id",
            "trace_id": "trace-1",
            "details": {"conversation_id": "x"},
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("err", [
        UpstreamServiceError("Job queue unavailable", details={"queue": "chat"}),
        DataIntegrityError("insert failed", details={"table": "conversation_messages"}),
    ])
    async def test_infrastructure_error_is_generic(self, err):
        resp = await comptoir_error_handler(_request(), err)
        body = json.loads(resp.body)
        assert resp.status_code == err.status_code
        assert body["message"] == GENERIC_FAILURE_MESSAGE
        assert body["details"] == {}
        assert body["trace_id"] == err.trace_id
