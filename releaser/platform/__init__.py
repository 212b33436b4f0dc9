"""Platform adapters: processes, files, HTTP."""

from .process import CommandRunner, ExternalCommandError, run

__all__ = ["CommandRunner", "ExternalCommandError", "run"]
