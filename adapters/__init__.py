"""
SCM provider adapters.

- ScmAdapter: the contract the orchestrator consumes
- GitLabAdapter: GitLab REST API v4 implementation
- ScmRegistry: identity_tag -> adapter routing
"""

from adapters.base import ScmAdapter
from adapters.gitlab import GitLabAdapter
from adapters.registry import ScmRegistry

__all__ = [
    "GitLabAdapter",
    "ScmAdapter",
    "ScmRegistry",
]
