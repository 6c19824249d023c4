import json
import logging

from siteapi.logging_config import JsonFormatter, trace_id_var
from siteapi.security import redact_headers


def test_json_formatter_includes_trace_and_request_fields():
    record = logging.LogRecord("siteapi.http", logging.WARNING, __file__, 1, "HTTP Request", None, None)
    record.method = "GET"
    record.status = 403
    record.organization_id = "org-1"
    token = trace_id_var.set("trace-123")
    try:
        entry = json.loads(JsonFormatter().format(record))
    finally:
        trace_id_var.reset(token)

    assert entry["msg"] == "HTTP Request"
    assert entry["level"] == "WARNING"
    assert entry["trace_id"] == "trace-123"
    assert entry["method"] == "GET"
    assert entry["status"] == 403
    assert entry["organization_id"] == "org-1"


def test_credentials_are_redacted():
    headers = redact_headers({"Authorization": "Bearer sk-us-x", "X-API-Key": "k", "Accept": "*/*"})
    assert headers == {"Authorization": "[REDACTED]", "X-API-Key": "[REDACTED]", "Accept": "*/*"}
