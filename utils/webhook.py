"""
GitLab webhook normalization.

Turns raw push and merge request deliveries into CanonicalWebhookEvent.
Only a narrow accept-list produces an event; every other delivery (tag
pushes, draft or locked merge requests, comments, pipelines...) yields None
so it can never trigger a build by accident.
"""

import hmac
from typing import Any

from loguru import logger

from models.platform import CanonicalWebhookEvent

EVENT_HEADER = "x-gitlab-event"
TOKEN_HEADER = "x-gitlab-token"

MERGE_REQUEST_ACTIONS = {
    "opened": "opened",
    "reopened": "reopened",
    "closed": "closed",
    "merged": "closed",
}


def lower_headers(headers: dict[str, str] | None) -> dict[str, str]:
    """Header names are case-insensitive; normalize them once."""
    return {str(k).lower(): v for k, v in (headers or {}).items()}


def _normalize_push(payload: dict[str, Any], scm_context: str | None) -> CanonicalWebhookEvent | None:
    # Tag pushes share object_kind "push" but carry event_name "tag_push"
    if payload.get("event_name") != "push":
        return None

    try:
        commits = payload.get("commits") or []
        last_message = commits[-1].get("message", "") if commits else ""

        return CanonicalWebhookEvent(
            type="repo",
            action="push",
            username=payload.get("user_name"),
            checkout_url=payload["project"]["git_http_url"],
            branch=payload["ref"].split("/")[-1],
            sha=payload.get("checkout_sha"),
            last_commit_message=last_message or "",
            scm_context=scm_context,
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise ValueError(f"Invalid push event payload: {e}")


def _normalize_merge_request(
    payload: dict[str, Any], scm_context: str | None
) -> CanonicalWebhookEvent | None:
    try:
        merge_request = payload["object_attributes"]
        action = MERGE_REQUEST_ACTIONS.get(merge_request.get("state"))
        if action is None:
            return None

        iid = merge_request["iid"]

        return CanonicalWebhookEvent(
            type="pr",
            action=action,
            username=(payload.get("user") or {}).get("username"),
            checkout_url=merge_request["source"]["git_http_url"],
            branch=merge_request["target_branch"],
            sha=merge_request["last_commit"]["id"],
            pr_number=iid,
            pr_ref=f"merge_requests/{iid}",
            scm_context=scm_context,
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise ValueError(f"Invalid merge request event payload: {e}")


def normalize_webhook(
    payload: dict[str, Any], scm_context: str | None = None
) -> CanonicalWebhookEvent | None:
    """
    Normalize a GitLab webhook payload.

    Args:
        payload: Raw webhook payload
        scm_context: Identity tag of the adapter that received the delivery

    Returns:
        CanonicalWebhookEvent, or None when the delivery is not actionable

    Raises:
        ValueError: If an accepted event kind is missing required fields
    """
    if not isinstance(payload, dict):
        raise ValueError(f"Webhook payload must be an object, got {type(payload).__name__}")

    kind = payload.get("object_kind")

    if kind == "push":
        return _normalize_push(payload, scm_context)
    if kind == "merge_request":
        return _normalize_merge_request(payload, scm_context)

    return None


def verify_webhook_token(headers: dict[str, str] | None, secret: str | None) -> bool:
    """
    Verify the X-Gitlab-Token header against the configured secret.

    Returns:
        True if the token matches or no secret is configured, False otherwise
    """
    if not secret:
        return True

    token = lower_headers(headers).get(TOKEN_HEADER)
    if not token:
        logger.warning("Missing X-Gitlab-Token header for verification")
        return False

    is_valid = hmac.compare_digest(token.encode(), secret.encode())
    if not is_valid:
        logger.warning("Invalid GitLab webhook token")

    return is_valid


__all__ = [
    "EVENT_HEADER",
    "TOKEN_HEADER",
    "lower_headers",
    "normalize_webhook",
    "verify_webhook_token",
]
