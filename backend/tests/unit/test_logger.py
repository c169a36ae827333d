from __future__ import annotations

import json
import logging

from token_authority.core.logger import REDACTED, JSONFormatter, RequestIdFilter, ensure_request_id
from token_authority.services.auth.dto import Principal


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("token_authority.test", logging.INFO, __file__, 1, "auth.%s", ("login",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_promotes_known_extras():
    record = _record(subject="alice@example.com", reason="expired", token="never-logged")
    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "auth.login"
    assert payload["level"] == "INFO"
    assert payload["subject"] == "alice@example.com"
    assert payload["reason"] == "expired"
    assert "token" not in payload


def test_request_id_from_header(app):
    with app.test_request_context("/", headers={"X-Correlation-ID": "corr-1"}):
        assert ensure_request_id() == "corr-1"
        record = _record()
        RequestIdFilter().filter(record)
        assert record.request_id == "corr-1"


def test_request_id_outside_request_is_fresh():
    assert ensure_request_id() != ensure_request_id()
    record = _record()
    RequestIdFilter().filter(record)
    assert record.request_id is None


def test_response_echoes_request_id(client):
    resp = client.get("/health", headers={"X-Request-ID": "req-7"})
    assert resp.headers["X-Request-ID"] == "req-7"


def test_formatter_redacts_encoded_tokens(factory):
    token = factory.issue_access_token(Principal(id=1, email="a@example.com", display_name="A"))
    record = _record()
    record.msg, record.args = "presented %s", (token,)

    payload = json.loads(JSONFormatter().format(record))
    assert token not in payload["message"]
    assert payload["message"] == f"presented {REDACTED}"
    assert payload["service"] == "token-authority"


def test_each_request_gets_its_own_request_id(client):
    first = client.get("/health", headers={"X-Request-ID": "req-a"})
    second = client.get("/health", headers={"X-Request-ID": "req-b"})
    third = client.get("/health")

    assert first.headers["X-Request-ID"] == "req-a"
    assert second.headers["X-Request-ID"] == "req-b"
    assert third.headers["X-Request-ID"] not in {"req-a", "req-b"}


def test_request_id_not_cached_on_app_context(app, client):
    client.get("/health", headers={"X-Request-ID": "req-leak"})
    with app.test_request_context("/"):
        assert ensure_request_id() != "req-leak"
