"""Token state tables: issued refresh tokens and blacklisted access tokens."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from token_authority.core.extensions import db

from .base import CreatedAtMixin, PKMixin, ReprMixin


class RefreshToken(PKMixin, ReprMixin, CreatedAtMixin, db.Model):
    """
    One consumable refresh token.

    ``token_digest`` is the unique lookup key; the row is deleted when the
    token is consumed by rotation or revoked by logout.
    """

    __tablename__ = "refresh_tokens"

    token_digest: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    token: Mapped[str] = mapped_column(Text, nullable=False)
    subject: Mapped[str] = mapped_column(String(254), nullable=False, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)


class BlacklistedToken(CreatedAtMixin, db.Model):
    """Revoked access token, kept until its natural expiry."""

    __tablename__ = "blacklisted_tokens"

    token_digest: Mapped[str] = mapped_column(String(64), primary_key=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<BlacklistedToken {self.token_digest[:12]}>"
