import json

import pytest

from siteapi.api.responses import (
    calculate_pagination,
    created_response,
    error_response,
    forbidden_response,
    method_not_allowed_response,
    no_content_response,
    not_found_response,
    parse_pagination_params,
    rate_limit_response,
    server_error_response,
    success_response,
    unauthorized_response,
    validation_error_response,
)
from siteapi.errors import ErrorCode


def body(resp):
    return json.loads(resp.body)


def test_pagination_middle_page():
    assert calculate_pagination(45, 2, 20) == {
        "total": 45, "page": 2, "per_page": 20, "total_pages": 3, "has_more": True,
    }


def test_pagination_last_page_and_empty():
    assert calculate_pagination(45, 3, 20)["has_more"] is False
    empty = calculate_pagination(0, 1, 20)
    assert empty["total_pages"] == 0
    assert empty["has_more"] is False


@pytest.mark.parametrize("query,expected", [
    ({}, (1, 20)),
    ({"per_page": "500"}, (1, 100)),
    ({"page": "0"}, (1, 20)),
    ({"page": "-3", "per_page": "0"}, (1, 1)),
    ({"page": "abc", "per_page": "x"}, (1, 20)),
    ({"page": "4", "per_page": "50"}, (4, 50)),
    ({"page": "99999999999999999999"}, (1000000, 20)),
])
def test_parse_pagination_params_clamps(query, expected):
    assert parse_pagination_params(query) == expected


def test_success_envelope_with_meta():
    resp = success_response([{"id": 1}], calculate_pagination(1, 1, 20))
    assert resp.status_code == 200
    assert resp.headers["cache-control"] == "no-store"
    data = body(resp)
    assert data["success"] is True
    assert data["data"] == [{"id": 1}]
    assert data["meta"]["total_pages"] == 1


def test_success_envelope_omits_meta_when_absent():
    data = body(success_response({"ok": True}))
    assert "meta" not in data


def test_created_and_no_content():
    assert created_response({"id": "x"}).status_code == 201
    resp = no_content_response()
    assert resp.status_code == 204
    assert resp.headers["cache-control"] == "no-store"


def test_error_envelope_includes_details_outside_production(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "development")
    data = body(error_response(ErrorCode.BAD_REQUEST, "bad", 400, {"field": ["required"]}))
    assert data == {
        "success": False,
        "error": {"code": "BAD_REQUEST", "message": "bad", "details": {"field": ["required"]}},
    }


def test_error_envelope_hides_details_in_production(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    resp = server_error_response(details="connection reset by peer")
    assert resp.status_code == 500
    data = body(resp)
    assert data["error"]["code"] == "INTERNAL_ERROR"
    assert "details" not in data["error"]


@pytest.mark.parametrize("resp,status,code", [
    (unauthorized_response(), 401, "UNAUTHORIZED"),
    (forbidden_response(), 403, "FORBIDDEN"),
    (not_found_response("Site"), 404, "NOT_FOUND"),
    (validation_error_response("nope"), 400, "VALIDATION_ERROR"),
    (rate_limit_response(), 429, "RATE_LIMIT_EXCEEDED"),
    (method_not_allowed_response(["GET", "POST"]), 405, "METHOD_NOT_ALLOWED"),
])
def test_canonical_codes(resp, status, code):
    assert resp.status_code == status
    assert body(resp)["error"]["code"] == code
    assert resp.headers["cache-control"] == "no-store"


def test_not_found_names_resource():
    assert body(not_found_response("Site"))["error"]["message"] == "Site not found"


def test_rate_limit_has_retry_after():
    resp = rate_limit_response(retry_after=42)
    assert resp.headers["retry-after"] == "42"


def test_method_not_allowed_lists_allow_header():
    resp = method_not_allowed_response(["GET", "POST"])
    assert resp.headers["allow"] == "GET, POST"
    assert "GET, POST" in body(resp)["error"]["message"]


def test_error_code_default_statuses():
    assert ErrorCode.UNAUTHORIZED.status == 401
    assert ErrorCode.RATE_LIMIT_EXCEEDED.status == 429
    assert ErrorCode.INTERNAL_ERROR.status == 500
