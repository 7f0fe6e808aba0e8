"""GitHub API integration service"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, TYPE_CHECKING

from github import Auth, Github, GithubException

from grovr.exceptions import GitHubAPIError
from grovr.logging_config import get_logger
from grovr.models.remote import RemoteIdentity
from grovr.utils.threading import get_optimal_worker_count

if TYPE_CHECKING:
    from github.Repository import Repository

logger = get_logger(__name__)

PUBLIC_API_URL = "https://api.github.com"

STATUS_MESSAGES = {
    401: "Invalid token",
    403: "Token has insufficient permissions",
    404: "GitHub API not found (check enterprise URL)",
}


@dataclass
class TokenValidation:
    """Outcome of checking a GitHub token."""
    valid: bool
    username: Optional[str] = None
    error: Optional[str] = None


def api_url_for(config_type: str = "cloud", host: Optional[str] = None) -> str:
    """Return the REST API root for github.com or a GitHub Enterprise host."""
    if config_type == "enterprise":
        return f"https://{host or 'github.com'}/api/v3"
    return PUBLIC_API_URL


class GitHubService:
    def __init__(self, token: str, base_url: str = PUBLIC_API_URL):
        """Initialize the service.

        Args:
            token: Personal access token (read from the secret store by the caller)
            base_url: REST API root, see ``api_url_for``
        """
        self.base_url = base_url
        self.github = Github(base_url=base_url, auth=Auth.Token(token))

    def validate_token(self) -> TokenValidation:
        """Check the token by fetching the authenticated user."""
        try:
            login = self.github.get_user().login
            logger.debug(f"[GitHub] Token valid for {login}")
            return TokenValidation(valid=True, username=login)
        except GithubException as e:
            error = STATUS_MESSAGES.get(e.status, f"GitHub API error: {e.status}")
            logger.debug(f"[GitHub] Token validation failed: {error}")
            return TokenValidation(valid=False, error=error)

    def get_repository(self, identity: RemoteIdentity) -> "Repository":
        """Look up the repository a remote points at."""
        try:
            return self.github.get_repo(identity.full_name)
        except GithubException as e:
            raise GitHubAPIError("get_repo", f"{identity.full_name}: {e.status}") from e

    def _fetch_single_branch_pr_data(self, gh_repo: "Repository", owner: str, branch_name: str) -> Tuple[str, Dict]:
        """Fetch PR data for a single branch. Returns (branch_name, pr_data_dict)."""
        try:
            branch_prs = list(gh_repo.get_pulls(state="all", head=f"{owner}:{branch_name}"))
            pr_data = {
                "count": sum(1 for pr in branch_prs if pr.state == "open"),
                "merged": any(pr.merged for pr in branch_prs),
                "closed": any(pr.state == "closed" and not pr.merged for pr in branch_prs),
            }
            return (branch_name, pr_data)
        except GithubException as e:
            logger.debug(f"[GitHub] Error fetching PRs for branch {branch_name}: {e}")
            return (branch_name, {"count": 0, "merged": False, "closed": False})

    def get_bulk_pr_data(self, identity: RemoteIdentity, branch_names: List[str]) -> Dict[str, Dict]:
        """Get PR data (open count, merged, closed-unmerged) for worktree branches in parallel."""
        if not branch_names:
            return {}

        gh_repo = self.get_repository(identity)
        max_workers = min(10, get_optimal_worker_count())  # Cap at 10 for API rate limiting

        logger.debug(
            f"[GitHub] Fetching PR data for {len(branch_names)} branches using {max_workers} workers"
        )

        result = {}
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [
                executor.submit(self._fetch_single_branch_pr_data, gh_repo, identity.owner, branch)
                for branch in branch_names
            ]
            for future in as_completed(futures):
                branch_name, pr_data = future.result()
                result[branch_name] = pr_data

        return result

    def close(self) -> None:
        """Close the GitHub API connection to clean up resources."""
        self.github.close()
