"""Unit tests for :class:`UserRepository`."""

from __future__ import annotations

from tests.factories.user import UserFactory

from token_authority.repositories.user import UserRepository


class TestUserRepository:
    def test_get_by_email_is_case_insensitive(self, session):
        user = UserFactory(email="bob@example.com")
        repo = UserRepository(session)
        assert repo.get_by_email(" BOB@example.com ") is user
        assert repo.get_by_email("nobody@example.com") is None

    def test_exists_by_email(self, session):
        UserFactory(email="carol@example.com")
        repo = UserRepository(session)
        assert repo.exists_by_email("carol@example.com")
        assert not repo.exists_by_email("dave@example.com")

    def test_authenticate(self, session):
        UserFactory(email="erin@example.com", password="pa55word")
        repo = UserRepository(session)
        assert repo.authenticate("erin@example.com", "pa55word").email == "erin@example.com"
        assert repo.authenticate("erin@example.com", "nope") is None
        assert repo.authenticate("ghost@example.com", "pa55word") is None

    def test_create_reuses_roles(self, session):
        repo = UserRepository(session)
        first = repo.create(email="f@example.com", password="x1", display_name="F", roles=["user"])
        second = repo.create(
            email="g@example.com", password="x2", display_name="G", roles=["USER", "ADMIN"]
        )
        assert first.role_names == frozenset({"USER"})
        assert second.role_names == frozenset({"USER", "ADMIN"})
        assert repo.get_or_create_role("user").id == first.roles[0].id
