"""
GitLab adapter implementation.

Implements ScmAdapter for GitLab (REST API v4): address resolution,
webhook registration and normalization, commit decoration, permissions and
best-effort commit statuses. Every request goes through one
ResilientClient, so all operations of an adapter share one breaker.
"""

import asyncio
import base64
import binascii
import time
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import quote

from adapters.base import ScmAdapter
from models.platform import (
    DEFAULT_AUTHOR,
    Author,
    BreakerStats,
    BuildStatus,
    CanonicalWebhookEvent,
    CheckoutCommand,
    CheckoutDescriptor,
    CommitDecoration,
    CredentialMode,
    Permissions,
    PullRequestRef,
    ScmRequest,
    UrlDecoration,
)
from models.settings import GitLabSettings
from utils.address import decode_address, encode_address, parse_checkout_url
from utils.breaker import ResilientClient, Transport
from utils.checkout import build_checkout_command
from utils.errors import HostMismatch, ScmError
from utils.logger import scm_logger
from utils.mapping import map_access_level, map_build_status
from utils.metrics import (
    commit_status_failures_total,
    webhook_normalized_total,
    webhook_received_total,
)
from utils.transport import HttpxTransport
from utils.webhook import EVENT_HEADER, lower_headers, normalize_webhook


def _project_path(project_id: str) -> str:
    """API path of a project; ids may be numeric or ``owner/reponame``."""
    return f"/projects/{quote(str(project_id), safe='')}"


class GitLabAdapter(ScmAdapter):
    """
    GitLab implementation of ScmAdapter.

    Handles all GitLab-specific API interactions. Pure concerns (address
    codec, mapping tables, webhook normalization, checkout script) live in
    utils and are called from here.
    """

    def __init__(
        self,
        settings: GitLabSettings | None = None,
        transport: Transport | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize GitLab adapter.

        Args:
            settings: Adapter configuration (host, protocol, breaker...)
            transport: Transport collaborator; an HttpxTransport is created if omitted
            clock: Monotonic clock for the breaker, injectable for tests
            sleep: Retry backoff sleep, injectable for tests
        """
        self.settings = settings or GitLabSettings()
        self._owns_transport = transport is None
        self.transport = transport or HttpxTransport(timeout=self.settings.request_timeout)
        self.client = ResilientClient(
            self.transport,
            self.identity_tag,
            settings=self.settings.breaker,
            clock=clock,
            sleep=sleep,
        )

    @property
    def identity_tag(self) -> str:
        return f"gitlab:{self.settings.host}"

    def _api(self, path: str) -> str:
        return f"{self.settings.api_url}{path}"

    async def _get(self, path: str, token: str, caller: str, params: dict | None = None) -> Any:
        response = await self.client.call(
            ScmRequest(method="GET", url=self._api(path), token=token, params=params),
            caller=caller,
        )
        return response.body

    # -------------------------------------------------------------------------
    # Repository addressing
    # -------------------------------------------------------------------------

    async def _get_project(self, repository_id: str, token: str, caller: str) -> dict:
        return await self._get(_project_path(repository_id), token, caller)

    async def resolve_address(self, address: str, token: str) -> CheckoutDescriptor:
        repo = decode_address(address)
        project = await self._get_project(repo.repository_id, token, "resolve_address")

        # Subgroups: everything before the last segment is the owner
        owner, _, reponame = project["path_with_namespace"].rpartition("/")

        return CheckoutDescriptor(
            hostname=repo.hostname,
            owner=owner,
            reponame=reponame,
            branch=repo.branch,
        )

    async def translate_checkout_url(self, checkout_url: str, token: str) -> str:
        repo_info = parse_checkout_url(checkout_url)

        if repo_info.hostname != self.settings.host:
            raise HostMismatch(repo_info.hostname, self.settings.host)

        project = await self._get(
            _project_path(f"{repo_info.owner}/{repo_info.reponame}"),
            token,
            "translate_checkout_url",
        )

        return encode_address(repo_info.hostname, str(project["id"]), repo_info.branch)

    async def decorate_url(self, address: str, token: str) -> UrlDecoration:
        scm_info = await self.resolve_address(address, token)
        base_url = f"{scm_info.hostname}/{scm_info.owner}/{scm_info.reponame}"

        return UrlDecoration(
            branch=scm_info.branch,
            name=f"{scm_info.owner}/{scm_info.reponame}",
            url=f"{self.settings.protocol}://{base_url}/tree/{scm_info.branch}",
        )

    # -------------------------------------------------------------------------
    # Webhooks
    # -------------------------------------------------------------------------

    async def _find_webhook(self, repository_id: str, notify_url: str, token: str) -> dict | None:
        hooks = await self._get(f"{_project_path(repository_id)}/hooks", token, "find_webhook")
        return next((hook for hook in hooks or [] if hook.get("url") == notify_url), None)

    async def register_webhook(self, address: str, notify_url: str, token: str) -> None:
        repo = decode_address(address)
        hook_info = await self._find_webhook(repo.repository_id, notify_url, token)

        url = self._api(f"{_project_path(repo.repository_id)}/hooks")
        method = "POST"
        if hook_info:
            method = "PUT"
            url += f"/{hook_info['id']}"

        await self.client.call(
            ScmRequest(
                method=method,
                url=url,
                token=token,
                json_body={
                    "url": notify_url,
                    "push_events": True,
                    "merge_requests_events": True,
                },
            ),
            caller="register_webhook",
        )
        scm_logger(self.identity_tag, "register_webhook").info(
            f"{'Updated' if hook_info else 'Created'} webhook {notify_url} "
            f"on project {repo.repository_id}"
        )

    async def normalize_webhook(
        self, headers: dict[str, str], payload: Any
    ) -> CanonicalWebhookEvent | None:
        webhook_received_total.labels(scm_context=self.identity_tag).inc()
        try:
            event = normalize_webhook(payload, scm_context=self.identity_tag)
        except ValueError:
            webhook_normalized_total.labels(scm_context=self.identity_tag, result="invalid").inc()
            raise

        result = "event" if event else "ignored"
        webhook_normalized_total.labels(scm_context=self.identity_tag, result=result).inc()
        return event

    async def can_handle_webhook(self, headers: dict[str, str], payload: Any) -> bool:
        if EVENT_HEADER not in lower_headers(headers):
            return False

        try:
            return normalize_webhook(payload, scm_context=self.identity_tag) is not None
        except Exception as e:
            scm_logger(self.identity_tag, "can_handle_webhook").debug(f"Cannot handle webhook: {e}")
            return False

    # -------------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------------

    def build_checkout_command(
        self,
        host: str,
        org: str,
        repo: str,
        branch: str,
        sha: str,
        credential_mode: CredentialMode,
        pr_ref: str | None = None,
    ) -> CheckoutCommand:
        return build_checkout_command(
            host=host,
            org=org,
            repo=repo,
            branch=branch,
            sha=sha,
            credential_mode=credential_mode,
            git_username=self.settings.username,
            git_email=self.settings.email,
            pr_ref=pr_ref,
        )

    # -------------------------------------------------------------------------
    # Commits and files
    # -------------------------------------------------------------------------

    async def latest_commit_sha(self, address: str, token: str) -> str:
        repo = decode_address(address)
        branch = await self._get(
            f"{_project_path(repo.repository_id)}/repository/branches/{quote(repo.branch, safe='')}",
            token,
            "latest_commit_sha",
        )
        return branch["commit"]["id"]

    async def file_contents(
        self, address: str, path: str, token: str, ref: str | None = None
    ) -> str:
        repo = decode_address(address)
        body = await self._get(
            f"{_project_path(repo.repository_id)}/repository/files/{quote(path, safe='')}",
            token,
            "file_contents",
            params={"ref": ref or repo.branch},
        )

        content = body.get("content") or ""
        encoding = body.get("encoding") or "text"
        if encoding == "base64":
            try:
                return base64.b64decode(content).decode("utf-8")
            except (binascii.Error, UnicodeDecodeError) as e:
                raise ScmError(f"Cannot decode {path}@{ref or repo.branch}: {e}") from e
        return content

    async def open_pull_requests(self, address: str, token: str) -> list[PullRequestRef]:
        repo = decode_address(address)
        merge_requests = await self._get(
            f"{_project_path(repo.repository_id)}/merge_requests",
            token,
            "open_pull_requests",
            params={"state": "opened"},
        )

        return [
            PullRequestRef(name=f"PR-{mr['iid']}", ref=f"merge_requests/{mr['iid']}")
            for mr in merge_requests or []
        ]

    async def _get_commit(self, repository_id: str, sha: str, token: str) -> dict:
        return await self._get(
            f"{_project_path(repository_id)}/repository/commits/{sha}", token, "decorate_commit"
        )

    async def decorate_commit(self, address: str, sha: str, token: str) -> CommitDecoration:
        repo = decode_address(address)

        # Independent lookups; either failing fails the decoration
        scm_info, commit_info = await asyncio.gather(
            self.resolve_address(address, token),
            self._get_commit(repo.repository_id, sha, token),
        )

        if commit_info.get("author_name"):
            author = await self.decorate_author(commit_info["author_name"], token)
        else:
            author = DEFAULT_AUTHOR

        return CommitDecoration(
            author=author,
            message=commit_info.get("message") or "",
            url=f"{self.settings.base_url}/{scm_info.owner}/{scm_info.reponame}/tree/{sha}",
        )

    async def decorate_author(self, username: str, token: str) -> Author:
        users = await self._get("/users", token, "decorate_author", params={"username": username})

        if not users:
            return DEFAULT_AUTHOR

        user = users[0]
        return Author(
            url=user.get("web_url") or DEFAULT_AUTHOR.url,
            name=user.get("name") or DEFAULT_AUTHOR.name,
            username=user.get("username") or DEFAULT_AUTHOR.username,
            avatar=user.get("avatar_url") or DEFAULT_AUTHOR.avatar,
        )

    # -------------------------------------------------------------------------
    # Permissions and statuses
    # -------------------------------------------------------------------------

    async def permissions_for(self, address: str, token: str) -> Permissions:
        repo = decode_address(address)
        project = await self._get_project(repo.repository_id, token, "permissions_for")

        project_access = (project.get("permissions") or {}).get("project_access") or {}
        return map_access_level(project_access.get("access_level", 0))

    async def report_build_status(
        self,
        address: str,
        sha: str,
        build_status: BuildStatus | str,
        target_url: str,
        token: str,
        job_name: str | None = None,
    ) -> None:
        context = self.settings.status_context
        if job_name:
            context = f"{context}/{job_name}"
        status = map_build_status(build_status)

        try:
            repo = decode_address(address)
            response = await self.client.call(
                ScmRequest(
                    method="POST",
                    url=self._api(f"{_project_path(repo.repository_id)}/statuses/{sha}"),
                    token=token,
                    json_body={
                        "context": context,
                        "description": status.description,
                        "state": status.state.value,
                        "target_url": target_url,
                    },
                ),
                caller="report_build_status",
                best_effort=True,
            )
        except ScmError as e:
            commit_status_failures_total.labels(
                scm_context=self.identity_tag, reason=type(e).__name__
            ).inc()
            scm_logger(self.identity_tag, "report_build_status").warning(
                f"Commit status for {sha} not reported: {e}"
            )
            return

        if not response.ok:
            commit_status_failures_total.labels(
                scm_context=self.identity_tag, reason=str(response.status_code)
            ).inc()

    async def changed_files(self, *args: Any, **kwargs: Any) -> list[str] | None:
        # GitLab has no equivalent endpoint; None means "unknown", not "no changes"
        return None

    # -------------------------------------------------------------------------
    # Observability
    # -------------------------------------------------------------------------

    def breaker_stats(self) -> dict[str, BreakerStats]:
        return {self.identity_tag: self.client.stats()}

    async def aclose(self) -> None:
        if self._owns_transport:
            await self.transport.close()
