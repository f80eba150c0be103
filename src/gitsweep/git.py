"""Git repository operations."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from gitsweep.backend import RepositoryBackend
from gitsweep.exceptions import GitError
from gitsweep.logging_config import get_logger

logger = get_logger(__name__)

# Identity for the throwaway commits built during squash detection; patch ids ignore it.
SYNTHETIC_IDENTITY = {
    "GIT_AUTHOR_NAME": "gitsweep",
    "GIT_AUTHOR_EMAIL": "gitsweep@localhost",
    "GIT_COMMITTER_NAME": "gitsweep",
    "GIT_COMMITTER_EMAIL": "gitsweep@localhost",
}


def _diagnostic(err: GitCommandError) -> str:
    """Extract git's own error text from a GitCommandError."""
    text = str(err.stderr or "").strip()
    prefix = "stderr: '"
    if text.startswith(prefix) and text.endswith("'"):
        text = text[len(prefix) : -1].strip()
    return text or str(err)


def _head(name: str) -> str:
    """Qualify a branch name so a same-named tag or remote ref never wins."""
    return name if name.startswith("refs/") else f"refs/heads/{name}"


class GitRepo(RepositoryBackend):
    """Git repository operations backed by GitPython."""

    def __init__(self, path: Path, timeout: Optional[float] = None) -> None:
        """Initialize repository.

        Args:
            path: Path to the working tree
            timeout: Seconds after which a single git call is killed, or None
        """
        try:
            self.repo: Repo = Repo(path, search_parent_directories=True)
            if self.repo.bare:
                raise GitError("Cannot operate on bare repository")
        except (GitCommandError, ValueError, InvalidGitRepositoryError, NoSuchPathError) as err:
            raise GitError(f"Failed to open repository: {err}") from err
        self.timeout = timeout

    def _git(self, command: str, *args: str, **kwargs) -> str:
        """Run a git subcommand with structured arguments and return stdout."""
        logger.debug("git %s %s", command, " ".join(args))
        try:
            return getattr(self.repo.git, command.replace("-", "_"))(*args, kill_after_timeout=self.timeout, **kwargs)
        except GitCommandError as err:
            raise GitError(f"git {command} failed", _diagnostic(err)) from err

    def resolve_symbolic_ref(self, name: str) -> Optional[str]:
        try:
            return self._git("symbolic-ref", "--quiet", name).strip() or None
        except GitError:
            return None

    def ref_exists(self, name: str) -> bool:
        try:
            self._git("rev-parse", "--verify", "--quiet", name)
            return True
        except GitError:
            return False

    def current_branch(self) -> str:
        return self._git("rev-parse", "--abbrev-ref", "HEAD").strip()

    def list_branches_merged_into(self, target: str) -> list[str]:
        output = self._git("for-each-ref", f"--merged={_head(target)}", "--format=%(refname:lstrip=2)", "refs/heads/")
        return [line for line in output.splitlines() if line]

    def list_all_branches(self) -> list[str]:
        output = self._git("for-each-ref", "--format=%(refname:lstrip=2)", "refs/heads/")
        return [line for line in output.splitlines() if line]

    def merge_base(self, a: str, b: str) -> str:
        return self._git("merge-base", _head(a), _head(b)).strip()

    def tree_of(self, ref: str) -> str:
        return self._git("rev-parse", "--verify", "--quiet", f"{_head(ref)}^{{tree}}").strip()

    def synthesize_commit(self, tree: str, parent: str) -> str:
        return self._git("commit-tree", tree, "-p", parent, "-m", "gitsweep squash check", env=SYNTHETIC_IDENTITY).strip()

    def compare_upstream(self, target: str, candidate: str) -> list[tuple[str, bool]]:
        output = self._git("cherry", _head(target), candidate)
        entries = []
        for line in output.splitlines():
            marker, _, commit = line.strip().partition(" ")
            if marker in ("+", "-"):
                entries.append((commit.strip(), marker == "-"))
        return entries

    def commit_timestamps(self) -> dict[str, datetime]:
        # Raw dates are "<unix seconds> <tz offset>"; names go last so they may contain the separator.
        output = self._git("for-each-ref", "--format=%(committerdate:raw)|%(refname:lstrip=2)", "refs/heads/")
        timestamps = {}
        for line in output.splitlines():
            raw_date, sep, name = line.partition("|")
            if not sep or not name:
                continue
            try:
                seconds = int(raw_date.split()[0])
            except (IndexError, ValueError):
                logger.debug("Skipping unparsable commit date %r for %s", raw_date, name)
                continue
            timestamps[name] = datetime.fromtimestamp(seconds, tz=timezone.utc)
        return timestamps

    def delete_branches(self, names: list[str]) -> None:
        self._git("branch", "-D", "--", *names)

    def switch_branch(self, name: str) -> None:
        self._git("checkout", name, "--")
