"""Development REST server for the Olive Lifecycle Platform."""

from .app import create_app, start_server

__all__ = ["create_app", "start_server"]
