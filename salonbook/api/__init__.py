"""HTTP API for the booking engine."""

from salonbook.api.app import create_app

__all__ = ["create_app"]
