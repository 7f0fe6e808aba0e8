"""Branch model"""
from dataclasses import dataclass


@dataclass(frozen=True)
class Branch:
    """A local or remote-tracking branch."""
    name: str
    is_remote: bool
    is_head: bool  # Only ever True for the checked-out local branch
