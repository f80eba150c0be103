"""Test configuration and fixtures."""

from datetime import datetime
from pathlib import Path
from typing import Callable, Generator, Optional

import pytest
from git import Actor, Repo

from gitsweep.backend import RepositoryBackend
from gitsweep.exceptions import GitError

AUTHOR = Actor("Test User", "test@example.com")


def init_repo(path: Path, branch: str = "main") -> Repo:
    """Initialize a repository whose first branch is named branch."""
    path.mkdir(parents=True, exist_ok=True)
    repo = Repo.init(path)
    repo.git.symbolic_ref("HEAD", f"refs/heads/{branch}")

    with repo.config_writer() as writer:
        writer.set_value("user", "name", AUTHOR.name)
        writer.set_value("user", "email", AUTHOR.email)
        writer.set_value("commit", "gpgsign", "false")

    commit_file(repo, "README.md", "# Test Repository", "Initial commit", date="2024-01-01T12:00:00+00:00")
    return repo


def commit_file(repo: Repo, filename: str, content: str, message: str, date: Optional[str] = None) -> None:
    """Write a file and commit it on the checked-out branch."""
    file_path = Path(repo.working_tree_dir) / filename
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(content)
    repo.git.add(filename)
    env = {"GIT_AUTHOR_DATE": date, "GIT_COMMITTER_DATE": date} if date else None
    repo.git.commit("-m", message, env=env)


@pytest.fixture
def test_env(tmp_path: Path) -> Generator[tuple[Path, Path], None, None]:
    """Create a test environment with local and remote repositories.

    Local branches:
        main              default branch, origin/HEAD points at it
        feature/merged    merged with a merge commit
        feature/ff        fast-forwarded into main
        feature/squashed  two commits squash merged into main
        feature/unmerged  work that never landed
        feature/current   checked out, no own commits

    Returns:
        Tuple of (local_repo_path, remote_repo_path)
    """
    remote_path = tmp_path / "remote"
    local_path = tmp_path / "local"
    remote_path.mkdir()
    Repo.init(remote_path, bare=True)

    local_repo = init_repo(local_path)
    origin = local_repo.create_remote("origin", url=str(remote_path))
    origin.push("main")
    local_repo.git.remote("set-head", "origin", "main")

    # Merge commit
    local_repo.git.checkout("-b", "feature/merged", "main")
    commit_file(local_repo, "merged.txt", "Merged branch content", "Add merged")
    local_repo.git.checkout("main")
    local_repo.git.merge("--no-ff", "-m", "Merge feature/merged", "feature/merged")

    # Fast-forward
    local_repo.git.checkout("-b", "feature/ff", "main")
    commit_file(local_repo, "ff.txt", "Fast-forward content", "Add ff")
    local_repo.git.checkout("main")
    local_repo.git.merge("--ff-only", "feature/ff")

    # Squash merge after main moved on
    local_repo.git.checkout("-b", "feature/squashed", "main")
    commit_file(local_repo, "squashed.txt", "first draft", "Start squashed work")
    commit_file(local_repo, "squashed.txt", "final content", "Finish squashed work")
    local_repo.git.checkout("main")
    commit_file(local_repo, "other.txt", "Unrelated work on main", "Unrelated main commit")
    local_repo.git.merge("--squash", "feature/squashed")
    local_repo.git.commit("-m", "Squashed feature")

    # Never merged
    local_repo.git.checkout("-b", "feature/unmerged", "main")
    commit_file(local_repo, "unmerged.txt", "Unmerged content", "Add unmerged")

    local_repo.git.checkout("-b", "feature/current", "main")

    yield local_path, remote_path


@pytest.fixture
def dated_repo(tmp_path: Path) -> Path:
    """Create a repository with branches committed on known dates.

    main is the oldest and stays checked out; old < mid < new.
    """
    repo = init_repo(tmp_path / "dated")
    for name, date in (
        ("mid", "2024-03-01T12:00:00+00:00"),
        ("new", "2024-04-01T12:00:00+00:00"),
        ("old", "2024-02-01T12:00:00+00:00"),
    ):
        repo.git.checkout("-b", name, "main")
        commit_file(repo, f"{name}.txt", name, f"Add {name}", date=date)
    repo.git.checkout("main")
    return Path(repo.working_tree_dir)


@pytest.fixture
def make_repo(tmp_path: Path) -> Callable[[str], Path]:
    """Build a single-branch repository without remotes."""

    def factory(branch: str) -> Path:
        repo = init_repo(tmp_path / branch, branch)
        return Path(repo.working_tree_dir)

    return factory


class FakeBackend(RepositoryBackend):
    """In-memory backend.

    Branches listed in squashed compare as fully upstream; all other branches
    report one new commit. Operation names in fail raise GitError, and
    branches in broken fail their squash check.
    """

    def __init__(
        self,
        branches=(),
        current: str = "main",
        merged=(),
        squashed=(),
        symbolic=None,
        refs=None,
        timestamps=None,
        fail=(),
        broken=(),
    ) -> None:
        self.branches = list(branches)
        self.current = current
        self.merged = list(merged)
        self.squashed = set(squashed)
        self.symbolic = dict(symbolic or {})
        self.refs = set(self.branches if refs is None else refs)
        self.timestamps: dict[str, datetime] = dict(timestamps or {})
        self.fail = set(fail)
        self.broken = set(broken)
        self.calls: list[str] = []

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail:
            raise GitError(f"git {operation} failed", "fatal: simulated failure")

    def resolve_symbolic_ref(self, name):
        self._check("resolve_symbolic_ref")
        return self.symbolic.get(name)

    def ref_exists(self, name):
        self._check("ref_exists")
        return name in self.refs

    def current_branch(self):
        self._check("current_branch")
        return self.current

    def list_branches_merged_into(self, target):
        self._check("list_branches_merged_into")
        return list(self.merged)

    def list_all_branches(self):
        self._check("list_all_branches")
        return list(self.branches)

    def merge_base(self, a, b):
        self._check("merge_base")
        if b in self.broken:
            raise GitError("git merge-base failed", f"fatal: no merge base for {b}")
        return f"base-{b}"

    def tree_of(self, ref):
        self._check("tree_of")
        return f"tree-{ref}"

    def synthesize_commit(self, tree, parent):
        self._check("synthesize_commit")
        return "synthetic-" + tree[len("tree-") :]

    def compare_upstream(self, target, candidate):
        self._check("compare_upstream")
        branch = candidate[len("synthetic-") :]
        if branch in self.squashed:
            return [("c1", True), ("c2", True)]
        return [("c1", True), ("c2", False)]

    def commit_timestamps(self):
        self._check("commit_timestamps")
        return dict(self.timestamps)

    def delete_branches(self, names):
        self._check("delete_branches")
        for name in names:
            if name not in self.branches:
                raise GitError("git branch failed", f"error: branch '{name}' not found.")
        self.branches = [branch for branch in self.branches if branch not in names]

    def switch_branch(self, name):
        self._check("switch_branch")
        if name not in self.branches:
            raise GitError("git checkout failed", f"error: pathspec '{name}' did not match")
        self.current = name


@pytest.fixture
def make_backend() -> type[FakeBackend]:
    """Give tests the in-memory backend class."""
    return FakeBackend
