"""Exceptions raised by gitsweep."""

from typing import Optional


class GitError(Exception):
    """Git operation error."""

    def __init__(self, message: str, diagnostic: Optional[str] = None) -> None:
        """Initialize error.

        Args:
            message: Error message
            diagnostic: Raw diagnostic text reported by git, if any
        """
        if diagnostic:
            message = f"{message}: {diagnostic}"
        super().__init__(message)
        self.diagnostic = diagnostic or ""


class ResolutionError(GitError):
    """No default branch could be determined."""


class EnumerationError(GitError):
    """Local branches could not be listed."""


class CurrentBranchError(GitError):
    """The checked-out branch could not be determined."""


class MergeDetectionError(GitError):
    """Merged branches could not be listed."""


class SquashDetectionError(GitError):
    """Squash-merged branches could not be detected."""


class DeletionError(GitError):
    """One or more branches could not be deleted."""


class RecencyError(GitError):
    """Branch commit dates could not be listed."""


class SwitchError(GitError):
    """A branch could not be checked out."""
