"""Configuration handling for grovr"""

from dataclasses import dataclass, field, fields
from typing import Optional, List


@dataclass
class Config:
    """Runtime configuration for grovr with validation."""

    # Git invocation
    git_executable: str = "git"
    remote_name: str = "origin"
    command_timeout: Optional[float] = None  # Seconds; None = wait forever
    background_workers: Optional[int] = None  # None = auto-detect

    # Worktree bootstrap
    copy_paths: List[str] = field(default_factory=list)
    fetch_before_create: bool = False
    worktree_root: Optional[str] = None  # Default parent directory for new worktrees

    # Output modes
    verbose: bool = False
    debug: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_git_executable()
        self._validate_remote_name()
        self._validate_command_timeout()
        self._validate_background_workers()
        self._validate_copy_paths()

    def _validate_git_executable(self):
        """Validate git_executable is not empty."""
        if not self.git_executable or not self.git_executable.strip():
            raise ValueError("git_executable cannot be empty")
        self.git_executable = self.git_executable.strip()

    def _validate_remote_name(self):
        """Validate remote_name is a single non-empty word."""
        if not self.remote_name or not self.remote_name.strip():
            raise ValueError("remote_name cannot be empty")
        self.remote_name = self.remote_name.strip()
        if " " in self.remote_name:
            raise ValueError(f"remote_name cannot contain spaces, got '{self.remote_name}'")

    def _validate_command_timeout(self):
        """Validate command_timeout is positive when set."""
        if self.command_timeout is not None and self.command_timeout <= 0:
            raise ValueError(f"command_timeout must be positive, got {self.command_timeout}")

    def _validate_background_workers(self):
        """Validate background_workers is positive when set."""
        if self.background_workers is not None and self.background_workers <= 0:
            raise ValueError(
                f"background_workers must be positive, got {self.background_workers}"
            )

    def _validate_copy_paths(self):
        """Validate copy_paths holds relative paths only."""
        if not isinstance(self.copy_paths, list):
            raise ValueError("copy_paths must be a list")
        for path in self.copy_paths:
            if path.startswith("/") or path.startswith("\\"):
                raise ValueError(f"copy_paths entries must be relative, got '{path}'")

    def to_dict(self) -> dict:
        """Convert config to a plain dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary, ignoring unknown keys."""
        known_fields = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)
