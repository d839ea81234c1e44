"""
Checkout script synthesis.

Builds the shell command a build container runs to fetch sources. The
credential strategy is passed in as a CredentialMode instead of being
decided by shell conditionals, so the output depends only on the arguments.
Credentials themselves never appear in the text: the token variant expands
$SCM_USERNAME and $SCM_ACCESS_TOKEN inside the container.
"""

from models.platform import CheckoutCommand, CredentialMode

CHECKOUT_STEP_NAME = "checkout-code"
SOURCE_DIR_VAR = "$SOURCE_DIR"


def scm_url_for(host: str, org: str, repo: str, mode: CredentialMode) -> str:
    """Clone URL for the chosen credential mode (without the .git suffix)."""
    if mode == CredentialMode.SSH:
        return f"git@{host}:{org}/{repo}"
    if mode == CredentialMode.TOKEN:
        return f"https://$SCM_USERNAME:$SCM_ACCESS_TOKEN@{host}/{org}/{repo}"
    return f"https://{host}/{org}/{repo}"


def build_checkout_command(
    host: str,
    org: str,
    repo: str,
    branch: str,
    sha: str,
    credential_mode: CredentialMode,
    git_username: str,
    git_email: str,
    pr_ref: str | None = None,
) -> CheckoutCommand:
    """
    Compose the checkout command.

    For pull requests the pipeline branch is checked out first and the PR
    ref is fetched and merged on top; otherwise the clone is hard-reset to
    the requested SHA.

    Args:
        host: Provider host
        org: Repository owner
        repo: Repository name
        branch: Pipeline branch
        sha: Commit SHA to build
        credential_mode: Which clone URL variant to use
        git_username: user.name configured in the clone
        git_email: user.email configured in the clone
        pr_ref: Optional merge request ref (e.g. "merge_requests/42")

    Returns:
        CheckoutCommand with steps joined by " && "
    """
    display_url = f"{host}/{org}/{repo}"
    checkout_ref = branch if pr_ref else sha

    command = [
        "echo Exporting environment variables",
        f"export SCM_URL={scm_url_for(host, org, repo, credential_mode)}",
        "export GIT_URL=$SCM_URL.git",
        # older git lacks merge --no-edit
        "export GIT_MERGE_AUTOEDIT=no",
        f"echo Cloning {display_url}, on branch {branch}",
        f"git clone --quiet --progress --branch {branch} $SCM_URL {SOURCE_DIR_VAR}",
        f"cd {SOURCE_DIR_VAR}",
        f"echo Reset to SHA {checkout_ref}",
        f"git reset --hard {checkout_ref}",
        "echo Setting user name and user email",
        f"git config user.name {git_username}",
        f"git config user.email {git_email}",
    ]

    if pr_ref:
        command.extend(
            [
                f"echo Fetching PR and merging with {branch}",
                f"git fetch origin {pr_ref}",
                f"git merge {sha}",
            ]
        )

    return CheckoutCommand(name=CHECKOUT_STEP_NAME, command=" && ".join(command))


__all__ = [
    "CHECKOUT_STEP_NAME",
    "build_checkout_command",
    "scm_url_for",
]
