"""GitHub REST API v3 host."""

import asyncio
import logging
import subprocess
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import httpx
import jwt
from pydantic import ValidationError

from gib.errors import HostInvalidFormatError, HostKeyReadError, HostRequestError
from gib.hosts.base import GitHost
from gib.models import Comment, CommentId, Issue, IssueId, Label, Repo, RepoId, User, UserId
from gib.settings import GibSettings

logger = logging.getLogger(__name__)

BASE_URL = "https://api.github.com"

LABELS_PER_PAGE = 100

# GitHub caps app JWTs at 10 minutes; iat is backdated for clock skew.
APP_JWT_LIFETIME = 600
APP_JWT_SKEW = 60
# Installation tokens live one hour; renew this long before they expire.
TOKEN_REFRESH_MARGIN = timedelta(minutes=5)


class GitHubApp:
    """GitHub App credentials: signs app JWTs and exchanges them for installation tokens."""

    def __init__(self, app_id: int, installation_id: int, private_key_path: Path) -> None:
        self.app_id = app_id
        self.installation_id = installation_id
        try:
            self._private_key = Path(private_key_path).read_text()
        except OSError as exc:
            raise HostKeyReadError(f"unable to read GitHub App private key {private_key_path}: {exc}") from exc
        # Fail on a bad key now rather than on the first API call.
        self.make_jwt()

    def make_jwt(self) -> str:
        now = int(time.time())
        payload = {"iat": now - APP_JWT_SKEW, "exp": now + APP_JWT_LIFETIME, "iss": str(self.app_id)}
        try:
            return jwt.encode(payload, self._private_key, algorithm="RS256")
        except (ValueError, TypeError, jwt.PyJWTError) as exc:
            raise HostKeyReadError(f"unable to decode GitHub App private key: {exc}") from exc


class GitHubHost(GitHost):
    def __init__(self, settings: GibSettings) -> None:
        self._name = settings.bot_name
        self._base_url = settings.github_api_url.rstrip("/")
        self._app: GitHubApp | None = None
        self._token: str | None = None
        self._token_expires_at: datetime | None = None
        self._token_lock = asyncio.Lock()
        if settings.github_auth == "app":
            self._app = _app_from_settings(settings)
        else:
            self._token = self._resolve_token(settings)
        self._client = httpx.AsyncClient(
            headers={
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            timeout=30,
        )

    def _resolve_token(self, settings: GibSettings) -> str:
        if settings.github_auth == "gh-cli":
            try:
                result = subprocess.run(
                    ["gh", "auth", "token"],
                    capture_output=True,
                    text=True,
                )
            except OSError as exc:
                raise HostKeyReadError(f"unable to run gh: {exc}") from exc
            if result.returncode != 0:
                raise HostKeyReadError("gh auth token failed. Run: gh auth login")
            return result.stdout.strip()
        if settings.github_token:
            return settings.github_token.get_secret_value()
        raise HostKeyReadError("No GitHub credentials. Set GIB_GITHUB_TOKEN or github_token in the config file.")

    @property
    def self_name(self) -> str:
        return self._name

    # ----- Helpers -----

    async def _access_token(self) -> str:
        if self._app is None:
            return self._token
        async with self._token_lock:
            expires_at = self._token_expires_at
            stale = expires_at is None or expires_at - datetime.now(timezone.utc) < TOKEN_REFRESH_MARGIN
            if self._token is None or stale:
                await self._exchange_installation_token()
        return self._token

    async def _exchange_installation_token(self) -> None:
        url = f"{self._base_url}/app/installations/{self._app.installation_id}/access_tokens"
        try:
            response = await self._client.post(url, headers={"Authorization": f"Bearer {self._app.make_jwt()}"})
        except httpx.HTTPError as exc:
            raise HostRequestError(f"cannot access GitHub API: {exc}") from exc
        if response.status_code in (401, 403, 404):
            raise HostKeyReadError(
                f"GitHub App token exchange returned {response.status_code}. "
                "Check github_app_id, github_installation_id and the private key."
            )
        if response.is_error:
            raise HostRequestError(f"GitHub API returned {response.status_code} for POST {url}")
        node = _json(response)
        try:
            token = node["token"]
            expires_at = datetime.fromisoformat(node["expires_at"].replace("Z", "+00:00"))
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
        except (KeyError, TypeError, AttributeError, ValueError) as exc:
            raise HostInvalidFormatError(f"invalid format of the installation token response: {exc}") from exc
        self._token, self._token_expires_at = token, expires_at
        logger.info(
            "obtained installation token for app=%s installation=%s, expires %s",
            self._app.app_id,
            self._app.installation_id,
            self._token_expires_at.isoformat(),
        )

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if not url.startswith("http"):
            url = f"{self._base_url}{url}"
        headers = {"Authorization": f"Bearer {await self._access_token()}"}
        try:
            response = await self._client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise HostRequestError(f"cannot access GitHub API: {exc}") from exc
        if response.status_code == 401:
            raise HostRequestError("GitHub API returned 401. Check the configured GitHub credentials.")
        if response.is_error:
            raise HostRequestError(f"GitHub API returned {response.status_code} for {method} {url}")
        return response

    async def _get(self, path: str, params: dict | None = None) -> Any:
        response = await self._request("GET", path, params=params or {})
        return _json(response)

    async def _post(self, path: str, body: dict) -> Any:
        response = await self._request("POST", path, json=body)
        return _json(response)

    # ----- Public APIs -----

    async def get_user(self, user_id: UserId) -> User:
        node = await self._get(f"/user/{user_id}")
        return _convert(lambda: User(id=user_id, nickname=node["login"]))

    async def get_repo(self, repo_id: RepoId) -> Repo:
        node = await self._get(f"/repositories/{repo_id}")
        return _convert(lambda: Repo(id=repo_id, owner=node["owner"]["login"], name=node["name"]))

    async def get_issue(self, repo_id: RepoId, issue_id: IssueId) -> Issue:
        node = await self._get(f"/repositories/{repo_id}/issues/{issue_id}")
        return _convert(
            lambda: Issue(
                id=issue_id,
                author_user_id=node["user"]["id"],
                title=node["title"],
                body=node.get("body") or "",
            )
        )

    async def get_comment(self, repo_id: RepoId, issue_id: IssueId, comment_id: CommentId) -> Comment:
        # Comment ids are unique per repository; issue_id is not part of the URL.
        node = await self._get(f"/repositories/{repo_id}/issues/comments/{comment_id}")
        return _convert(lambda: Comment(id=comment_id, author_user_id=node["user"]["id"], body=node["body"]))

    async def make_comment(self, repo_id: RepoId, issue_id: IssueId, message: str) -> None:
        if not message:
            raise ValueError("comment message must not be empty")
        await self._post(f"/repositories/{repo_id}/issues/{issue_id}/comments", {"body": message})
        logger.info("commented on repo=%s issue=%s", repo_id, issue_id)

    async def get_repo_labels(self, repo_id: RepoId) -> list[Label]:
        labels: list[Label] = []
        url: str | None = f"/repositories/{repo_id}/labels"
        params: dict | None = {"per_page": str(LABELS_PER_PAGE)}
        while url:
            response = await self._request("GET", url, params=params)
            nodes = _json(response)
            if not isinstance(nodes, list):
                raise HostInvalidFormatError("GitHub API returned labels in the wrong format")
            for node in nodes:
                labels.append(
                    _convert(
                        lambda: Label(
                            id=node["id"],
                            name=node["name"],
                            description=node.get("description") or "",
                        )
                    )
                )
            # The next link already carries the query string.
            url = response.links.get("next", {}).get("url")
            params = None
        return labels

    async def assign_label(self, repo_id: RepoId, issue_id: IssueId, label_name: str) -> None:
        await self._post(f"/repositories/{repo_id}/issues/{issue_id}/labels", {"labels": [label_name]})
        logger.info("assigned label %r to repo=%s issue=%s", label_name, repo_id, issue_id)

    async def aclose(self) -> None:
        await self._client.aclose()


def _app_from_settings(settings: GibSettings) -> GitHubApp:
    if None in (settings.github_app_id, settings.github_installation_id, settings.github_private_key_path):
        raise HostKeyReadError(
            "GitHub App auth needs github_app_id, github_installation_id and github_private_key_path."
        )
    return GitHubApp(settings.github_app_id, settings.github_installation_id, settings.github_private_key_path)


def _json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise HostInvalidFormatError("GitHub API returned a non-JSON response") from exc


def _convert(build):
    """Build a model from a response node, mapping shape problems to HostInvalidFormatError."""
    try:
        return build()
    except (KeyError, TypeError, ValidationError) as exc:
        raise HostInvalidFormatError(f"invalid format of the GitHub API response: {exc}") from exc
