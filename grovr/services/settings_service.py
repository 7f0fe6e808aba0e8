"""Persistent application settings for grovr.

Settings live in one JSON document (``~/.grovr/settings.json``) shaped as
``{"settings": {...}}``. The worktree services never read it; front ends pass
values such as ``copy_paths`` in explicitly.
"""
import copy
import json
import os
import tempfile
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from threading import Lock
from typing import Dict, Iterator, List, Optional

from grovr.exceptions import SettingsError
from grovr.logging_config import get_logger

# Import fcntl for POSIX file locking (Unix/Linux/macOS)
try:
    import fcntl
    HAS_FCNTL = True
except ImportError:
    HAS_FCNTL = False

logger = get_logger(__name__)

SETTINGS_KEY = "settings"
DEFAULT_SETTINGS_PATH = Path.home() / ".grovr" / "settings.json"


@dataclass
class IdeConfig:
    """Editor used to open worktrees."""
    ide_type: str = "preset"  # "preset" or "custom"
    preset: Optional[str] = None
    custom_command: Optional[str] = None

    def to_dict(self) -> dict:
        return {"type": self.ide_type, "preset": self.preset, "custom_command": self.custom_command}

    @classmethod
    def from_dict(cls, data: dict) -> "IdeConfig":
        return cls(
            ide_type=data.get("type", "preset"),
            preset=data.get("preset"),
            custom_command=data.get("custom_command"),
        )


@dataclass
class ProjectConfig:
    """A repository registered with grovr."""
    name: str
    repo_path: str
    default_base_branch: Optional[str] = None
    ide: Optional[IdeConfig] = None
    emoji: Optional[str] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["ide"] = self.ide.to_dict() if self.ide else None
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectConfig":
        ide = data.get("ide")
        return cls(
            name=data["name"],
            repo_path=data["repo_path"],
            default_base_branch=data.get("default_base_branch"),
            ide=IdeConfig.from_dict(ide) if ide else None,
            emoji=data.get("emoji"),
        )


@dataclass
class GitHubConfigMeta:
    """GitHub connection metadata. The token itself is kept in the secret store."""
    id: str
    name: str
    config_type: str = "cloud"  # "cloud" or "enterprise"
    host: Optional[str] = None

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "type": self.config_type, "host": self.host}

    @classmethod
    def from_dict(cls, data: dict) -> "GitHubConfigMeta":
        return cls(
            id=data["id"],
            name=data["name"],
            config_type=data.get("type", "cloud"),
            host=data.get("host"),
        )


@dataclass
class JiraConfigMeta:
    """Jira connection metadata. The API token is kept in the secret store.

    ``has_token`` is filled in when the config is read back and is never saved.
    """
    host: str
    email: Optional[str] = None
    id: Optional[str] = None
    name: Optional[str] = None
    has_token: bool = False

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "host": self.host, "email": self.email}

    @classmethod
    def from_dict(cls, data: dict) -> "JiraConfigMeta":
        return cls(
            host=data["host"],
            email=data.get("email"),
            id=data.get("id"),
            name=data.get("name"),
        )


@dataclass
class WorktreeMemo:
    """Free-form notes attached to a worktree path."""
    description: Optional[str] = None
    issue_number: Optional[str] = None


@dataclass
class Settings:
    """Application settings document."""

    ide: Optional[IdeConfig] = None
    theme: str = "system"
    launch_at_startup: Optional[bool] = None
    default_worktree_template: Optional[str] = None
    copy_paths: Optional[List[str]] = None
    fetch_before_create: Optional[bool] = None
    last_used_project: Optional[str] = None
    refresh_interval_minutes: int = 5
    skip_open_ide_confirm: Optional[bool] = None
    onboarding_completed: Optional[bool] = None
    projects: List[ProjectConfig] = field(default_factory=list)
    github_configs: List[GitHubConfigMeta] = field(default_factory=list)
    jira_configs: List[JiraConfigMeta] = field(default_factory=list)
    worktree_memos: Dict[str, WorktreeMemo] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert settings to a JSON-ready dictionary."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["ide"] = self.ide.to_dict() if self.ide else None
        data["projects"] = [p.to_dict() for p in self.projects]
        data["github_configs"] = [g.to_dict() for g in self.github_configs]
        data["jira_configs"] = [j.to_dict() for j in self.jira_configs]
        data["worktree_memos"] = {path: asdict(m) for path, m in self.worktree_memos.items()}
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        """Create Settings from a dictionary, ignoring unknown keys."""
        known_fields = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in known_fields}

        if filtered.get("ide"):
            filtered["ide"] = IdeConfig.from_dict(filtered["ide"])
        filtered["projects"] = [ProjectConfig.from_dict(p) for p in filtered.get("projects") or []]
        filtered["github_configs"] = [
            GitHubConfigMeta.from_dict(g) for g in filtered.get("github_configs") or []
        ]
        filtered["jira_configs"] = [
            JiraConfigMeta.from_dict(j) for j in filtered.get("jira_configs") or []
        ]
        filtered["worktree_memos"] = {
            path: WorktreeMemo(**memo) for path, memo in (filtered.get("worktree_memos") or {}).items()
        }
        if filtered.get("refresh_interval_minutes") is None:
            filtered.pop("refresh_interval_minutes", None)
        if filtered.get("theme") is None:
            filtered.pop("theme", None)
        return cls(**filtered)


class SettingsStore:
    """Reads and writes the settings JSON document."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else DEFAULT_SETTINGS_PATH
        self.lock_path = self.path.with_name(self.path.name + ".lock")

    @contextmanager
    def _acquire_lock(self, file_handle, operation: str = "read"):
        """Hold a shared (read) or exclusive (write) lock on the settings lock file."""
        if not HAS_FCNTL:
            yield
            return

        lock_type = fcntl.LOCK_EX if operation == "write" else fcntl.LOCK_SH
        fcntl.flock(file_handle.fileno(), lock_type)
        try:
            yield
        finally:
            fcntl.flock(file_handle.fileno(), fcntl.LOCK_UN)

    def load(self) -> Settings:
        """Load settings from disk.

        A missing or unreadable document yields default settings.
        """
        if not self.path.exists():
            logger.debug(f"No settings file at {self.path}, using defaults")
            return Settings()

        try:
            with open(self.lock_path, "a") as lock_file:
                with self._acquire_lock(lock_file, "read"):
                    with open(self.path, "r", encoding="utf-8") as f:
                        document = json.load(f)
            data = document.get(SETTINGS_KEY) if isinstance(document, dict) else None
            if not isinstance(data, dict):
                logger.warning(f"Settings file {self.path} has no '{SETTINGS_KEY}' object, using defaults")
                return Settings()
            return Settings.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Could not load settings from {self.path}: {e}")
            return Settings()

    def save(self, settings: Settings) -> None:
        """Write settings to disk atomically.

        The document is written to a temporary file unique to this call and
        moved into place while holding an exclusive lock on ``<path>.lock``.

        Raises:
            SettingsError: the document could not be written
        """
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.lock_path, "a") as lock_file:
                with self._acquire_lock(lock_file, "write"):
                    with tempfile.NamedTemporaryFile(
                        "w",
                        dir=self.path.parent,
                        prefix=f".{self.path.name}.",
                        suffix=".tmp",
                        delete=False,
                        encoding="utf-8",
                    ) as f:
                        tmp_path = f.name
                        json.dump({SETTINGS_KEY: settings.to_dict()}, f, indent=2)
                        f.flush()
                        os.fsync(f.fileno())
                    os.replace(tmp_path, self.path)
                    tmp_path = None
            logger.debug(f"Saved settings to {self.path}")
        except OSError as e:
            logger.error(f"Could not save settings to {self.path}: {e}")
            raise SettingsError(f"Failed to save settings: {e}") from e
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    logger.debug(f"Could not remove temporary settings file {tmp_path}")


class SettingsHandle:
    """Single owner of the in-memory settings.

    Pass the handle explicitly to whatever needs settings. ``edit()`` gives
    exclusive access for a read-modify-write sequence and persists the result;
    if the block raises, the in-memory settings are restored and nothing is saved.
    """

    def __init__(self, store: SettingsStore):
        self.store = store
        self._lock = Lock()
        self._settings = store.load()

    def snapshot(self) -> Settings:
        """Return a copy of the current settings."""
        with self._lock:
            return copy.deepcopy(self._settings)

    @contextmanager
    def edit(self) -> Iterator[Settings]:
        with self._lock:
            before = copy.deepcopy(self._settings)
            try:
                yield self._settings
                self.store.save(self._settings)
            except BaseException:
                self._settings = before
                raise

    def update(self, **changes) -> None:
        """Set top-level settings fields and save."""
        known_fields = {f.name for f in fields(Settings)}
        unknown = set(changes) - known_fields
        if unknown:
            raise SettingsError(f"Unknown settings: {', '.join(sorted(unknown))}")
        with self.edit() as settings:
            for key, value in changes.items():
                setattr(settings, key, value)

    # Projects

    def add_project(self, project: ProjectConfig) -> None:
        with self.edit() as settings:
            if any(p.repo_path == project.repo_path for p in settings.projects):
                raise SettingsError("Project with this path already exists")
            settings.projects.append(project)

    def update_project(self, repo_path: str, project: ProjectConfig) -> None:
        with self.edit() as settings:
            for idx, existing in enumerate(settings.projects):
                if existing.repo_path == repo_path:
                    settings.projects[idx] = project
                    return
            raise SettingsError("Project not found")

    def remove_project(self, repo_path: str) -> None:
        with self.edit() as settings:
            settings.projects = [p for p in settings.projects if p.repo_path != repo_path]

    def reorder_projects(self, repo_paths: List[str]) -> None:
        """Order projects by ``repo_paths``; projects not listed keep their order at the end."""
        with self.edit() as settings:
            by_path = {p.repo_path: p for p in settings.projects}
            ordered = [by_path[path] for path in repo_paths if path in by_path]
            ordered += [p for p in settings.projects if p.repo_path not in repo_paths]
            settings.projects = ordered

    # Worktree memos

    def get_worktree_memo(self, path: str) -> WorktreeMemo:
        with self._lock:
            return copy.deepcopy(self._settings.worktree_memos.get(path, WorktreeMemo()))

    def set_worktree_memo(self, path: str, memo: WorktreeMemo) -> None:
        with self.edit() as settings:
            settings.worktree_memos[path] = memo
