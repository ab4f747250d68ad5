"""Utility modules for the Olive Lifecycle Platform."""
