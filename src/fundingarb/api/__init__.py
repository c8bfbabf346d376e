"""HTTP API -- ranked opportunity list and scanner status."""

from fundingarb.api.app import create_app

__all__ = ["create_app"]
