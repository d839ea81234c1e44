"""
Mapping tables between orchestrator vocabulary and provider vocabulary.

Build statuses map to commit states plus a human description; provider
access levels map to cumulative pull/push/admin capability sets.
"""

from models.platform import BuildStatus, CommitState, CommitStatus, Permissions

STATE_MAP: dict[BuildStatus, CommitState] = {
    BuildStatus.SUCCESS: CommitState.SUCCESS,
    BuildStatus.FAILURE: CommitState.FAILURE,
    BuildStatus.ABORTED: CommitState.FAILURE,
    BuildStatus.RUNNING: CommitState.PENDING,
    BuildStatus.QUEUED: CommitState.PENDING,
}

DESCRIPTION_MAP: dict[BuildStatus, str] = {
    BuildStatus.SUCCESS: "Everything looks good!",
    BuildStatus.FAILURE: "Did not work as expected.",
    BuildStatus.ABORTED: "Aborted mid-flight",
    BuildStatus.RUNNING: "Testing your code...",
    BuildStatus.QUEUED: "Looking for a place to park...",
}

# ref: https://docs.gitlab.com/ee/api/members.html#roles
GUEST = 10
REPORTER = 20
DEVELOPER = 30
MAINTAINER = 40
OWNER = 50


def _coerce_build_status(status) -> BuildStatus | None:
    if isinstance(status, BuildStatus):
        return status
    try:
        return BuildStatus(str(status).upper())
    except ValueError:
        return None


def map_build_status(status: BuildStatus | str) -> CommitStatus:
    """
    Map an internal build status to a provider commit state and description.

    Total: unknown statuses map to ``failure`` with an empty description,
    never to ``success``.
    """
    known = _coerce_build_status(status)
    if known is None:
        return CommitStatus(state=CommitState.FAILURE, description="")

    return CommitStatus(state=STATE_MAP[known], description=DESCRIPTION_MAP[known])


def map_access_level(level: int | None) -> Permissions:
    """
    Map a provider access level to a cumulative capability set.

    Tiers fall through: anything granting admin also grants push and pull,
    anything granting push also grants pull. Levels between tiers take the
    lower tier.
    """
    try:
        level = int(level or 0)
    except (TypeError, ValueError):
        level = 0

    admin = push = pull = False

    if level >= MAINTAINER:  # Owner, Maintainer
        admin = True
    if level >= DEVELOPER:
        push = True
    if level >= REPORTER:
        pull = True
    # Guest and below: nothing

    return Permissions(admin=admin, push=push, pull=pull)


__all__ = [
    "DESCRIPTION_MAP",
    "STATE_MAP",
    "map_access_level",
    "map_build_status",
]
