"""Redis-backed adapters for the token stores."""
