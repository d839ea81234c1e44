"""
Address codec for internal repository addresses and checkout URLs.

Internal addresses are the compact ``hostname:repository_id:branch`` form the
orchestrator stores instead of a URL. Checkout URLs are what users paste in.
Nothing here performs I/O.
"""

import re

from models.platform import (
    ADDRESS_SEPARATOR,
    DEFAULT_BRANCH,
    CheckoutDescriptor,
    RepositoryAddress,
)
from utils.errors import MalformedAddress, UnsupportedUrl

# https://[user@]host[:port]/owner/repo[.git][#branch]  or  git@host:owner/repo[.git][#branch]
CHECKOUT_URL_PATTERN = re.compile(
    r"^(?:"
    r"(?:https?|git|ssh)://(?:[^@/\s]+@)?(?P<hostname>[^@/\s]+)/"
    r"|"
    r"[^@/:\s]+@(?P<scp_hostname>[^@/:\s]+):"
    r")"
    r"(?P<owner>[^/#\s]+)/"
    r"(?P<reponame>[^/#\s]+?)"
    r"(?:\.git)?"
    r"(?:#(?P<branch>[^#\s]+))?$"
)


def encode_address(hostname: str, repository_id: str, branch: str) -> str:
    """
    Join the address fields with the separator.

    Raises:
        MalformedAddress: If repository_id or branch contains the separator
    """
    for name, value in (("repository_id", repository_id), ("branch", branch)):
        if ADDRESS_SEPARATOR in str(value):
            raise MalformedAddress(
                f"{name} must not contain '{ADDRESS_SEPARATOR}': {value!r}"
            )

    return str(RepositoryAddress(hostname=hostname, repository_id=str(repository_id), branch=branch))


def decode_address(address: str) -> RepositoryAddress:
    """
    Split an internal address into its three fields.

    The split is taken from the right, so a hostname carrying a port
    (``git.example:8443:12:main``) still decodes.

    Raises:
        MalformedAddress: If the address has fewer than three parts
    """
    if not isinstance(address, str):
        raise MalformedAddress(f"Address must be a string, got {type(address).__name__}")

    parts = address.rsplit(ADDRESS_SEPARATOR, 2)
    if len(parts) < 3:
        raise MalformedAddress(
            f"Expected 'hostname{ADDRESS_SEPARATOR}repositoryId{ADDRESS_SEPARATOR}branch', "
            f"got {address!r}"
        )

    hostname, repository_id, branch = parts
    return RepositoryAddress(hostname=hostname, repository_id=repository_id, branch=branch)


def parse_checkout_url(url: str) -> CheckoutDescriptor:
    """
    Parse a checkout URL into hostname, owner, repo name and branch.

    Branch defaults to DEFAULT_BRANCH when no ``#branch`` suffix is present.

    Raises:
        UnsupportedUrl: If the URL does not match the checkout URL grammar
    """
    matched = CHECKOUT_URL_PATTERN.match(url or "")
    if not matched:
        raise UnsupportedUrl(f"Unsupported checkout URL: {url!r}")

    return CheckoutDescriptor(
        hostname=matched.group("hostname") or matched.group("scp_hostname"),
        owner=matched.group("owner"),
        reponame=matched.group("reponame"),
        branch=matched.group("branch") or DEFAULT_BRANCH,
    )


__all__ = [
    "CHECKOUT_URL_PATTERN",
    "decode_address",
    "encode_address",
    "parse_checkout_url",
]
