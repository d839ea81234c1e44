"""
Test fixtures package for SCM adapter tests.

This package contains sample webhook payloads shared across unit and
contract tests.
"""

from .webhook_payloads import (
    gitlab_merge_request_payload,
    gitlab_note_payload,
    gitlab_push_payload,
    gitlab_tag_push_payload,
)

__all__ = [
    "gitlab_merge_request_payload",
    "gitlab_note_payload",
    "gitlab_push_payload",
    "gitlab_tag_push_payload",
]
