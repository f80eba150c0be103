"""Branch merge-state classification.

Decides which local branches are already contained in the default branch,
either by ancestry (merge or fast-forward) or by content (squash merge).
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from gitsweep.backend import RepositoryBackend
from gitsweep.config import Settings
from gitsweep.exceptions import (
    CurrentBranchError,
    DeletionError,
    EnumerationError,
    GitError,
    MergeDetectionError,
    RecencyError,
    ResolutionError,
    SquashDetectionError,
    SwitchError,
)
from gitsweep.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Branch:
    """A local branch."""

    name: str
    last_commit_date: Optional[str] = None


@dataclass(frozen=True)
class ClassificationResult:
    """Branches safe to purge, plus warnings from detectors that failed."""

    purgeable: tuple[Branch, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def names(self) -> list[str]:
        return [branch.name for branch in self.purgeable]


def resolve_default_branch(backend: RepositoryBackend, settings: Optional[Settings] = None) -> str:
    """Determine the repository's default branch.

    The remote's HEAD wins; otherwise the first existing fallback candidate.

    Raises:
        ResolutionError: If neither yields a branch
    """
    settings = settings or Settings()
    prefix = f"refs/remotes/{settings.remote}/"

    target = backend.resolve_symbolic_ref(f"refs/remotes/{settings.remote}/HEAD")
    if target and target.startswith(prefix) and len(target) > len(prefix):
        default = target[len(prefix) :]
        logger.debug("Default branch %s from %s/HEAD", default, settings.remote)
        return default

    for candidate in settings.fallback_branches:
        if backend.ref_exists(candidate):
            logger.debug("Default branch %s from fallback candidates", candidate)
            return candidate

    raise ResolutionError(
        f"Could not determine default branch: {settings.remote}/HEAD is not set "
        f"and none of {', '.join(settings.fallback_branches) or '(no candidates)'} exist"
    )


def list_branches(backend: RepositoryBackend) -> list[str]:
    """List all local branch names."""
    try:
        return backend.list_all_branches()
    except GitError as err:
        raise EnumerationError(f"Failed to list branches: {err}") from err


def current_branch(backend: RepositoryBackend) -> str:
    """Get the checked-out branch name ("HEAD" when detached)."""
    try:
        return backend.current_branch()
    except GitError as err:
        raise CurrentBranchError(f"Failed to get current branch: {err}") from err


def merged_branches(backend: RepositoryBackend, default_branch: str) -> list[str]:
    """List branches whose tips are ancestors of the default branch."""
    try:
        return backend.list_branches_merged_into(default_branch)
    except GitError as err:
        raise MergeDetectionError(f"Failed to get merged branches: {err}") from err


def is_squash_merged(backend: RepositoryBackend, default_branch: str, branch: str) -> bool:
    """Check whether a branch's content already landed in the default branch.

    The branch's tree is attached to its merge base as a dangling commit and
    compared against the default branch with cherry. The branch counts as
    squash merged only if no commit is reported as missing upstream. Any git
    failure along the way means not squash merged.
    """
    try:
        merge_base = backend.merge_base(default_branch, branch)
        tree = backend.tree_of(branch)
        synthetic = backend.synthesize_commit(tree, merge_base)
        comparison = backend.compare_upstream(default_branch, synthetic)
    except GitError as err:
        logger.debug("Squash check skipped for %s: %s", branch, err)
        return False
    return all(upstream for _, upstream in comparison)


def squashed_branches(
    backend: RepositoryBackend,
    default_branch: str,
    branches: list[str],
    workers: int = 1,
) -> list[str]:
    """List branches whose content is already contained in the default branch.

    Raises:
        SquashDetectionError: If the default branch itself does not resolve
    """
    if not backend.ref_exists(default_branch):
        raise SquashDetectionError(f"Default branch {default_branch} does not resolve to a commit")

    candidates = [branch for branch in branches if branch != default_branch]
    if workers > 1 and len(candidates) > 1:
        with ThreadPoolExecutor(max_workers=min(workers, len(candidates))) as executor:
            results = list(executor.map(lambda branch: is_squash_merged(backend, default_branch, branch), candidates))
    else:
        results = [is_squash_merged(backend, default_branch, branch) for branch in candidates]

    return [branch for branch, squashed in zip(candidates, results) if squashed]


def classify(
    backend: RepositoryBackend,
    default_branch: str,
    branches: list[str],
    settings: Optional[Settings] = None,
) -> ClassificationResult:
    """Collect branches that are merged or squashed into the default branch.

    Detector failures become warnings and the other detector's findings are
    still returned. Without the current branch nothing is returned, since it
    could not be kept out of the candidates.
    """
    settings = settings or Settings()
    warnings = []

    try:
        current = current_branch(backend)
    except CurrentBranchError as err:
        return ClassificationResult(warnings=(f"Could not detect current branch: {err}",))

    try:
        merged = merged_branches(backend, default_branch)
    except MergeDetectionError as err:
        warnings.append(f"Could not detect merged branches: {err}")
        merged = []

    try:
        squashed = squashed_branches(backend, default_branch, branches, settings.workers)
    except SquashDetectionError as err:
        warnings.append(f"Could not detect squashed branches: {err}")
        squashed = []

    seen = set()
    purgeable = []
    for name in merged + squashed:
        if name in seen or name in (default_branch, current) or settings.is_protected(name):
            continue
        seen.add(name)
        purgeable.append(Branch(name=name))

    logger.info(
        "%d merged, %d squashed, %d purgeable (default %s, current %s)",
        len(merged),
        len(squashed),
        len(purgeable),
        default_branch,
        current,
    )
    return ClassificationResult(purgeable=tuple(purgeable), warnings=tuple(warnings))


def delete_branches(backend: RepositoryBackend, names: list[str]) -> None:
    """Force-delete the given branches. An empty list does nothing.

    Raises:
        DeletionError: With git's diagnostic text if the deletion fails
    """
    if not names:
        return
    try:
        backend.delete_branches(list(names))
    except GitError as err:
        raise DeletionError("Failed to delete branches", err.diagnostic or str(err)) from err
    logger.info("Deleted %s", ", ".join(names))


def recent_branches(backend: RepositoryBackend) -> list[Branch]:
    """List local branches, most recently committed first."""
    try:
        timestamps = backend.commit_timestamps()
    except GitError as err:
        raise RecencyError(f"Failed to get recent branches: {err}") from err

    ordered = sorted(timestamps.items(), key=lambda item: item[1], reverse=True)
    return [Branch(name=name, last_commit_date=stamp.astimezone().strftime("%Y-%m-%d")) for name, stamp in ordered]


def switch_branch(backend: RepositoryBackend, name: str) -> None:
    """Check out a local branch."""
    try:
        backend.switch_branch(name)
    except GitError as err:
        raise SwitchError(f"Failed to switch to {name}", err.diagnostic or str(err)) from err
