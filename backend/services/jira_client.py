"""Jira search client.

The /rest/api/3/search/jql endpoint only returns pages of issues plus a
nextPageToken, never a total, so counts are made by draining every page into
a set of issue keys.
"""

import logging
from typing import Iterator, Optional

import requests

from services.errors import TransientFetchError
from services.tenant_config import TenantConfig

logger = logging.getLogger(__name__)

SEARCH_ENDPOINT = "/rest/api/3/search/jql"
PAGE_SIZE = 100
DEFAULT_TIMEOUT = 10
BATCH_TIMEOUT = 15


class JiraSearchClient:
    """Authenticated access to the Jira search endpoint for one tenant."""

    def __init__(self, config: TenantConfig, timeout: int = DEFAULT_TIMEOUT):
        config.require_credentials()
        self.config = config
        self.server = config.base_url.rstrip("/")
        self.email = config.email
        self.token = config.api_token
        self.timeout = timeout

    def _request(self, endpoint: str, payload: dict, timeout: Optional[int] = None) -> dict:
        """Make authenticated POST request to Jira API."""
        try:
            response = requests.post(
                f"{self.server}{endpoint}",
                auth=(self.email, self.token),
                headers={"Accept": "application/json", "Content-Type": "application/json"},
                json=payload,
                timeout=timeout or self.timeout
            )
        except requests.exceptions.Timeout as e:
            raise TransientFetchError(f"Jira request timed out: {e}")
        except requests.exceptions.RequestException as e:
            raise TransientFetchError(f"Failed to connect to Jira: {e}")

        if not response.ok:
            raise TransientFetchError(
                f"Jira API error: {response.status_code}",
                status_code=response.status_code,
                response_body=(response.text or "")[:500]
            )

        try:
            return response.json()
        except ValueError as e:
            raise TransientFetchError(f"Invalid JSON from Jira: {e}",
                                      status_code=response.status_code)

    def search_page(self, jql: str, fields: list, max_results: int = PAGE_SIZE,
                    next_page_token: Optional[str] = None,
                    timeout: Optional[int] = None) -> dict:
        """Fetch a single page of search results.

        Returns:
            Dict with "issues" (list) and "nextPageToken" (str or None)
        """
        payload = {"jql": jql, "fields": list(fields), "maxResults": max_results}
        if next_page_token:
            payload["nextPageToken"] = next_page_token

        data = self._request(SEARCH_ENDPOINT, payload, timeout=timeout)
        if not isinstance(data, dict):
            raise TransientFetchError("Unexpected search response shape")

        issues = data.get("issues") or []
        if not isinstance(issues, list) or not all(isinstance(issue, dict) for issue in issues):
            raise TransientFetchError("Unexpected issue list in search response")
        return {
            "issues": issues,
            "nextPageToken": data.get("nextPageToken")
        }

    def iter_pages(self, jql: str, fields: list, page_size: int = PAGE_SIZE,
                   timeout: Optional[int] = None) -> Iterator[list]:
        """Yield the issue list of every page until no continuation token is returned."""
        seen_tokens = set()
        token = None

        while True:
            page = self.search_page(jql, fields, page_size, token, timeout=timeout)
            yield page["issues"]

            token = page["nextPageToken"]
            if not token:
                break
            if token in seen_tokens:
                logger.warning(f"Jira repeated page token for query: {jql}")
                break
            seen_tokens.add(token)

    def count_issues(self, jql: str, page_size: int = PAGE_SIZE) -> int:
        """Count unique issues matching jql by draining all pages into a key set."""
        keys = set()
        for issues in self.iter_pages(jql, ["key"], page_size):
            keys.update(issue["key"] for issue in issues if issue.get("key"))
        return len(keys)

    def fetch_issues(self, jql: str, fields: list, max_results: int = PAGE_SIZE) -> list:
        """Fetch the first page of issues (a bounded display batch)."""
        return self.search_page(jql, fields, max_results)["issues"]

    def fetch_all_issues(self, jql: str, fields: list,
                         timeout: Optional[int] = BATCH_TIMEOUT) -> list:
        """Fetch every issue matching jql, deduplicated by key, in upstream order."""
        all_issues = []
        seen_keys = set()

        for issues in self.iter_pages(jql, fields, timeout=timeout):
            for issue in issues:
                key = issue.get("key")
                if key and key in seen_keys:
                    continue
                if key:
                    seen_keys.add(key)
                all_issues.append(issue)

        return all_issues
