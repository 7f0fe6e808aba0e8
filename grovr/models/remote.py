"""Remote repository identity."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RemoteIdentity:
    """Owner/repository pair recovered from a remote URL."""

    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        """Return the ``owner/repo`` form used by the GitHub API."""
        return f"{self.owner}/{self.repo}"

    def __str__(self) -> str:
        return self.full_name
