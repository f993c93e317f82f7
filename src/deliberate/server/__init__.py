"""HTTP surface for Deliberate."""

from deliberate.server.app import create_app

__all__ = ["create_app"]
