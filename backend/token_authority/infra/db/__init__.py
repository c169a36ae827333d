"""SQLAlchemy-backed adapters for the token stores and the principal directory."""
