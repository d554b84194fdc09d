# ABOUTME: HTTP API package for Tome's provider subsystem, built on FastAPI.
# ABOUTME: Exposes the application factory used by `tome serve` and the tests.

from tome.api.app import create_app

__all__ = ["create_app"]
