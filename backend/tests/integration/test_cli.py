"""Integration tests for the Flask CLI command groups."""

from __future__ import annotations

from tests.factories.user import UserFactory

from token_authority.models import User


def test_create_principal(app, session):
    runner = app.test_cli_runner()
    result = runner.invoke(
        args=["principals", "create", "New@Example.com", "--password", "pw", "--role", "ADMIN"]
    )
    assert result.exit_code == 0, result.output
    assert "new@example.com roles=ADMIN" in result.output

    user = session.query(User).filter_by(email="new@example.com").one()
    assert user.verify_password("pw")


def test_create_principal_refuses_duplicates(app, session):
    UserFactory(email="dup@example.com")
    result = app.test_cli_runner().invoke(
        args=["principals", "create", "dup@example.com", "--password", "pw"]
    )
    assert result.exit_code != 0
    assert "already exists" in result.output


def test_purge(app):
    result = app.test_cli_runner().invoke(args=["tokens", "purge"])
    assert result.exit_code == 0
    assert result.output.startswith("Purged refresh=")
