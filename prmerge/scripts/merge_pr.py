#! /usr/bin/env python3

"""
Command-line script to land a labeled, green pull request on master and/or the newest patch branch.
"""

import logging
import sys

import click
import click_log
from git.exc import GitCommandError
from github.GithubException import GithubException

from prmerge.commit_message import message_filter_command
from prmerge.exception import MergeError
from prmerge.git_commands import build_command_plan, iter_commands
from prmerge.git_repo import LocalGitAPI, execute_command_plan, github_ssh_url
from prmerge.github_api import GitHubAPI
from prmerge.merge_plan import (
    REQUIRED_MASTER_BASE_SHA,
    REQUIRED_PATCH_BASE_SHA,
    build_merge_plan,
    evaluate_gates,
    select_patch_branch,
)

logging.basicConfig(stream=sys.stdout, level=logging.INFO)
LOG = logging.getLogger(__name__)

DEFAULT_ORG = 'edx'
DEFAULT_REPO = 'edx-platform'

DRY_RUN_FLAG = '--dryrun'
FORCE_FLAG = '--force'


def parse_pr_number(args):
    """
    Take the PR number from the leftover command-line tokens. The last one wins.

    Returns:
        int: The PR number, or 0 if none was given.

    Raises:
        click.BadParameter: If the token is not a positive integer.
    """
    if not args:
        return 0
    value = args[-1]
    try:
        pr_number = int(value)
    except ValueError:
        raise click.BadParameter(f"'{value}' is not a PR number.", param_hint='PR_NUMBER')
    if pr_number < 0:
        raise click.BadParameter(f"'{value}' is not a PR number.", param_hint='PR_NUMBER')
    return pr_number


@click.command("merge_pr", context_settings={'ignore_unknown_options': True})
@click.argument('args', nargs=-1, type=click.UNPROCESSED, metavar='[PR_NUMBER]')
@click.option(
    DRY_RUN_FLAG, 'dry_run',
    help='Do everything except pushing the merged branches.',
    is_flag=True,
    default=False,
)
@click.option(
    FORCE_FLAG, 'force',
    help='Merge even if the status checks have not passed.',
    is_flag=True,
    default=False,
)
@click.option(
    '--token',
    envvar='TOKEN',
    help='The github access token, see https://help.github.com/articles/creating-an-access-token-for-command-line-use/',
)
@click.option(
    '--org',
    help='Org from the GitHub repository URL of https://github.com/<org>/<repo>',
    default=DEFAULT_ORG,
)
@click.option(
    '--repo',
    help='Repo name from the GitHub repository URL of https://github.com/<org>/<repo>',
    default=DEFAULT_REPO,
)
@click.option(
    '--master-base-sha',
    help='Commit a PR branch must contain before it can land on master.',
    default=REQUIRED_MASTER_BASE_SHA,
    show_default=True,
)
@click.option(
    '--patch-base-sha',
    help='Commit a PR branch must contain before it can land on the patch branch alone.',
    default=REQUIRED_PATCH_BASE_SHA,
    show_default=True,
)
@click_log.simple_verbosity_option(default='INFO')
@click.pass_context
def merge_pr(ctx, args, dry_run, force, token, org, repo, master_base_sha, patch_base_sha):
    """
    Squash, tag with "Closes #PR_NUMBER" and cherry-pick a pull request onto
    master and/or the newest <major>.<minor>.x branch, then push.

    The PR needs the labels "PR action: merge", "cla: yes" and one "PR target:"
    label, and its status checks must have passed. Run it from a working copy
    of the repository.
    """
    try:
        pr_number = parse_pr_number(args)
    except click.BadParameter as exc:
        click.secho(exc.format_message(), fg='red')
        sys.exit(1)

    if not pr_number:
        click.echo(ctx.get_help())
        ctx.exit(0)

    if not token:
        click.secho(
            'WARNING: TOKEN is not set, GitHub API requests will be unauthenticated and rate limited.',
            fg='yellow', bold=True
        )

    remote_url = github_ssh_url(org, repo)
    try:
        pr_state = GitHubAPI(org, repo, token).fetch_pr_state(pr_number)
        click.echo(f"PR #{pr_number}: {pr_state.title}\n{pr_state.html_url}")

        targets = evaluate_gates(pr_state, force)

        local_repo = LocalGitAPI.from_working_dir()
        context = local_repo.context(remote_url)
        patch_branch = select_patch_branch(local_repo.remote_branch_refs(remote_url))
        merge_plan = build_merge_plan(
            pr_number, pr_state.commit_count, targets, patch_branch, master_base_sha, patch_base_sha
        )
        command_plan = build_command_plan(merge_plan, context, message_filter_command(pr_number))

        planned = iter_commands(command_plan, include_push=not dry_run)
        LOG.info("Planned commands:\n%s", "\n".join("    {}".format(command.render()) for command in planned))
        pushed = execute_command_plan(context, command_plan, dry_run)
    except MergeError as exc:
        click.secho(f"Error merging PR #{pr_number}: {exc}", fg='red')
        sys.exit(1)
    except GitCommandError as exc:
        LOG.error("Command '%s' failed with status %s.", ' '.join(exc.command), exc.status)
        click.secho(f"Error merging PR #{pr_number}: {exc}", fg='red')
        sys.exit(1)
    except GithubException as exc:
        LOG.error("GitHub request for PR #%s in %s/%s failed.", pr_number, org, repo)
        click.secho(f"Error fetching PR #{pr_number}: {exc}", fg='red')
        sys.exit(1)

    if pushed:
        click.secho(f"Merged and pushed PR #{pr_number}.", fg='green')
    else:
        click.secho(f"Merged PR #{pr_number} locally (dry run, nothing pushed).", fg='green')


if __name__ == "__main__":
    merge_pr()  # pylint: disable=no-value-for-parameter
