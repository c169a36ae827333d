"""Concrete adapters (Redis, SQL, HTTP) for the service-layer ports."""
