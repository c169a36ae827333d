"""HTTP helper utilities for tests."""

from __future__ import annotations


def bearer(token: str) -> dict[str, str]:
    """Return an ``Authorization: Bearer`` header for ``token``."""
    return {"Authorization": f"Bearer {token}"}


def assert_problem(resp, status: int) -> dict:
    """Assert ``resp`` is an RFC 7807 problem with ``status`` and return its body."""
    assert resp.status_code == status
    assert resp.mimetype == "application/problem+json"
    body = resp.get_json()
    assert body["status"] == status
    assert "request_id" in body
    return body


def assert_json_keys(data: dict, required: set[str]) -> None:
    """Ensure that all required keys are present in ``data``."""
    missing = required - data.keys()
    assert not missing, f"Missing keys: {', '.join(sorted(missing))}"
