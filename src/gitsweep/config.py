"""Configuration handling for gitsweep."""

from dataclasses import dataclass, field
from fnmatch import fnmatch
from typing import Optional

DEFAULT_REMOTE = "origin"
DEFAULT_FALLBACK_BRANCHES = ("main", "master")


@dataclass
class Settings:
    """Settings shared by the purge and recent workflows."""

    remote: str = DEFAULT_REMOTE
    fallback_branches: tuple[str, ...] = DEFAULT_FALLBACK_BRANCHES
    protect: tuple[str, ...] = field(default_factory=tuple)
    workers: int = 1  # 1 means squash checks run sequentially
    timeout: Optional[float] = None  # seconds per git call, None waits forever

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.remote = self.remote.strip()
        if not self.remote:
            raise ValueError("remote cannot be empty")
        self.fallback_branches = tuple(b.strip() for b in self.fallback_branches if b.strip())
        self.protect = tuple(p.strip() for p in self.protect if p.strip())
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")

    @classmethod
    def from_options(
        cls,
        remote: str = DEFAULT_REMOTE,
        protect: Optional[str] = None,
        workers: int = 1,
        timeout: Optional[float] = None,
    ) -> "Settings":
        """Build settings from raw CLI values; protect is a comma-separated pattern list."""
        patterns = tuple(protect.split(",")) if protect else ()
        return cls(remote=remote, protect=patterns, workers=workers, timeout=timeout)

    def is_protected(self, branch_name: str) -> bool:
        """Check if a branch matches any protect pattern."""
        return any(fnmatch(branch_name, pattern) for pattern in self.protect)
