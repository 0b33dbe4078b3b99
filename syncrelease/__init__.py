"""Commit-message linting and release version synchronization."""

__version__ = "0.4.0"
