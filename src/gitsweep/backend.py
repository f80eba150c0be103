"""Abstract interface to the version-control backend.

Everything the classifier needs from git goes through this interface so the
branch logic can run against a real repository or an in-memory fake.
Implementations raise GitError for any backend failure.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional


class RepositoryBackend(ABC):
    """Operations gitsweep needs from a repository."""

    @abstractmethod
    def resolve_symbolic_ref(self, name: str) -> Optional[str]:
        """Resolve a symbolic ref to the full name of the ref it points to.

        Returns None if the ref does not exist or is not symbolic.
        """
        ...

    @abstractmethod
    def ref_exists(self, name: str) -> bool:
        """Check whether a name resolves to a valid reference."""
        ...

    @abstractmethod
    def current_branch(self) -> str:
        """Get the name of the checked-out branch."""
        ...

    @abstractmethod
    def list_branches_merged_into(self, target: str) -> list[str]:
        """List local branches whose tips are reachable from target."""
        ...

    @abstractmethod
    def list_all_branches(self) -> list[str]:
        """List all local branch names."""
        ...

    @abstractmethod
    def merge_base(self, a: str, b: str) -> str:
        """Get the best common ancestor of two refs."""
        ...

    @abstractmethod
    def tree_of(self, ref: str) -> str:
        """Get the tree id of the commit a ref points to."""
        ...

    @abstractmethod
    def synthesize_commit(self, tree: str, parent: str) -> str:
        """Create an unreferenced commit object with the given tree and parent.

        No branch or ref is updated.
        """
        ...

    @abstractmethod
    def compare_upstream(self, target: str, candidate: str) -> list[tuple[str, bool]]:
        """Compare candidate against target, the way git cherry does.

        Returns one (commit id, already upstream) pair for each commit in
        candidate that is not reachable from target.
        """
        ...

    @abstractmethod
    def commit_timestamps(self) -> dict[str, datetime]:
        """Map each local branch to the committer date of its tip."""
        ...

    @abstractmethod
    def delete_branches(self, names: list[str]) -> None:
        """Force-delete local branches in a single operation."""
        ...

    @abstractmethod
    def switch_branch(self, name: str) -> None:
        """Check out a local branch."""
        ...
