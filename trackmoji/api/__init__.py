"""HTTP API package."""

from trackmoji.api.app import create_app

__all__ = ["create_app"]
