"""Git operations for the release pipeline."""

from .repository import Repository

__all__ = ["Repository"]
