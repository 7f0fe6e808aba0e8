"""Remote URL parsing."""

from typing import Optional

from grovr.models.remote import RemoteIdentity

DEFAULT_HOST = "github.com"


def _strip_git_suffix(path: str) -> str:
    return path[:-4] if path.endswith(".git") else path


def parse_remote_url(url: str, host: str = DEFAULT_HOST) -> Optional[RemoteIdentity]:
    """Recover the owner/repo pair from a remote URL.

    Recognised forms:
        git@<host>:<owner>/<repo>[.git]      exactly two segments
        https://<host>/<owner>/<repo>[.git]  two or more segments, extras ignored

    Args:
        url: Remote URL as printed by ``git remote get-url``
        host: Host name to look for

    Returns:
        RemoteIdentity, or None when the URL is not in a recognised form
    """
    url = url.strip()
    ssh_prefix = f"git@{host}:"
    https_marker = f"{host}/"

    if url.startswith(ssh_prefix):
        parts = _strip_git_suffix(url[len(ssh_prefix):]).split("/")
        if len(parts) != 2 or not all(parts):
            return None
    elif https_marker in url:
        parts = _strip_git_suffix(url.split(https_marker, 1)[1]).split("/")
        if len(parts) < 2:
            return None
    else:
        return None

    return RemoteIdentity(owner=parts[0], repo=parts[1])
