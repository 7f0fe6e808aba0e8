"""Jira Cloud integration service.

Worktree memos can carry an issue key. With a Jira connection configured,
grovr looks the issue up to show its summary and status. Without an email or
API token it stays in links-only mode and only builds browse URLs.
"""

import copy
from dataclasses import dataclass
from typing import Optional

import requests

from grovr.exceptions import JiraAPIError, SecretStoreError
from grovr.logging_config import get_logger
from grovr.services.github_service import TokenValidation
from grovr.services.secret_store import SecretStore, jira_token_key
from grovr.services.settings_service import JiraConfigMeta, SettingsHandle

logger = get_logger(__name__)

REQUEST_TIMEOUT = 30

STATUS_MESSAGES = {
    401: "Invalid email or API token",
    403: "Access denied",
    404: "Jira instance not found (check host URL)",
}


@dataclass
class JiraIssue:
    """Summary of a Jira issue."""
    key: str
    summary: str
    status: str
    status_category: str
    url: str

    def __str__(self) -> str:
        return f"{self.key}: {self.summary} [{self.status}]"


def browse_url(host: str, issue_key: str) -> str:
    return f"https://{host}/browse/{issue_key}"


class JiraService:
    def __init__(self, host: str, email: str, api_token: str, timeout: float = REQUEST_TIMEOUT):
        """Initialize the service.

        Args:
            host: Jira site host, e.g. ``acme.atlassian.net``
            email: Account email used for basic auth
            api_token: API token (read from the secret store by the caller)
            timeout: Per-request timeout in seconds
        """
        self.host = host
        self.base_url = f"https://{host}/rest/api/3"
        self.timeout = timeout
        self.session = requests.Session()
        self.session.auth = (email, api_token)
        self.session.headers.update({"Accept": "application/json"})

    def _get(self, operation: str, path: str, params: Optional[dict] = None) -> requests.Response:
        url = f"{self.base_url}{path}"
        logger.debug(f"[Jira] GET {url}")
        try:
            return self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.debug(f"[Jira] Request error: {e}")
            raise JiraAPIError(operation, str(e)) from e

    def validate_credentials(self) -> TokenValidation:
        """Check the email and token by fetching the authenticated user."""
        response = self._get("validate_credentials", "/myself")
        if not response.ok:
            error = STATUS_MESSAGES.get(response.status_code, f"Jira API error: {response.status_code}")
            logger.debug(f"[Jira] Credential validation failed: {error}")
            return TokenValidation(valid=False, error=error)

        try:
            display_name = response.json()["displayName"]
        except (ValueError, KeyError, TypeError) as e:
            raise JiraAPIError("validate_credentials", f"unexpected response: {e}") from e
        logger.debug(f"[Jira] Credentials valid for {display_name}")
        return TokenValidation(valid=True, username=display_name)

    def fetch_issue(self, issue_key: str) -> JiraIssue:
        """Fetch the summary and status of one issue.

        Raises:
            JiraAPIError: the request failed or Jira answered with an error status
        """
        response = self._get("fetch_issue", f"/issue/{issue_key}", params={"fields": "summary,status"})
        if not response.ok:
            raise JiraAPIError(
                "fetch_issue", f"Jira API error ({response.status_code}): {response.text}"
            )

        try:
            data = response.json()
            fields = data["fields"]
            key = data["key"]
            return JiraIssue(
                key=key,
                summary=fields["summary"],
                status=fields["status"]["name"],
                status_category=fields["status"]["statusCategory"]["key"],
                url=browse_url(self.host, key),
            )
        except (ValueError, KeyError, TypeError) as e:
            raise JiraAPIError("fetch_issue", f"unexpected response: {e}") from e

    def close(self) -> None:
        self.session.close()


def validate_jira_credentials(host: str, email: Optional[str], api_token: Optional[str]) -> TokenValidation:
    """Validate credentials before they are saved.

    Raises:
        ValueError: the email or the token is empty
    """
    if not email:
        raise ValueError("Email is required for validation")
    if not api_token:
        raise ValueError("API token is required for validation")

    service = JiraService(host, email, api_token)
    try:
        return service.validate_credentials()
    finally:
        service.close()


# Connection settings. grovr keeps at most one Jira connection.

def get_jira_config(handle: SettingsHandle, secrets: SecretStore) -> Optional[JiraConfigMeta]:
    """Return the configured connection with ``has_token`` filled in, or None."""
    configs = handle.snapshot().jira_configs
    if not configs:
        return None

    meta = copy.copy(configs[0])
    try:
        meta.has_token = bool(secrets.get(jira_token_key(meta.host)))
    except SecretStoreError as e:
        logger.warning(f"[Jira] Could not read token for {meta.host}: {e}")
        meta.has_token = False
    return meta


def set_jira_config(
    handle: SettingsHandle,
    secrets: SecretStore,
    meta: JiraConfigMeta,
    api_token: Optional[str] = None,
) -> None:
    """Save the connection, replacing any existing one.

    A non-empty ``api_token`` is stored first; if that fails the settings are
    left untouched.
    """
    if api_token:
        secrets.put(jira_token_key(meta.host), api_token)
        logger.debug(f"[Jira] Stored token for {meta.host}")
    with handle.edit() as settings:
        settings.jira_configs = [JiraConfigMeta(host=meta.host, email=meta.email, id=meta.id, name=meta.name)]


def remove_jira_config(handle: SettingsHandle, secrets: SecretStore) -> None:
    """Forget the connection and delete its stored tokens."""
    with handle.edit() as settings:
        for meta in settings.jira_configs:
            try:
                secrets.delete(jira_token_key(meta.host))
            except SecretStoreError as e:
                logger.warning(f"[Jira] Could not delete token for {meta.host}: {e}")
        settings.jira_configs = []


def fetch_configured_issue(
    handle: SettingsHandle, secrets: SecretStore, issue_key: str
) -> Optional[JiraIssue]:
    """Fetch an issue through the configured connection.

    Returns None when no connection, email or token is configured.

    Raises:
        JiraAPIError: the request failed or Jira answered with an error status
    """
    configs = handle.snapshot().jira_configs
    if not configs:
        logger.debug("[Jira] No connection configured")
        return None
    meta = configs[0]
    if not meta.email:
        logger.debug("[Jira] No email configured, links only")
        return None

    try:
        api_token = secrets.get(jira_token_key(meta.host))
    except SecretStoreError as e:
        logger.warning(f"[Jira] Could not read token for {meta.host}: {e}")
        return None
    if not api_token:
        logger.debug(f"[Jira] No token stored for {meta.host}")
        return None

    service = JiraService(meta.host, meta.email, api_token)
    try:
        return service.fetch_issue(issue_key)
    finally:
        service.close()
