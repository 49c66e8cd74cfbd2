"""
Direct git commands on the local working copy of a GitHub repo.
"""

from collections import namedtuple
from contextlib import contextmanager
import logging

from git import Repo
from git.exc import GitCommandError

from .exception import RebaseRecencyFailure
from . import git_commands

LOG = logging.getLogger(__name__)
LOG.setLevel(logging.INFO)

RepositoryContext = namedtuple('RepositoryContext', ['local_repo', 'remote_url', 'original_branch'])


UNKNOWN_COMMIT_ERRORS = ('no such commit', 'malformed object name')


def github_ssh_url(org, repo):
    return f'git@github.com:{org}/{repo}.git'


def _is_unknown_commit(exc):
    stderr = str(exc.stderr or '')
    return any(error in stderr for error in UNKNOWN_COMMIT_ERRORS)


class LocalGitAPI:
    """
    A set of helper functions for running git in an existing working copy.
    """

    def __init__(self, repo):
        self.repo = repo

    @classmethod
    def from_working_dir(cls, path='.'):
        """
        Initialize a LocalGitAPI for the repo containing ``path``.
        """
        return cls(Repo(path, search_parent_directories=True))

    def run(self, command):
        """
        Log and run a GitCommand, returning its stdout.

        Raises:
            git.exc.GitCommandError: If git exits non-zero.
        """
        LOG.info("+ %s", command.render())
        return self.repo.git.execute(command.argv, env=command.environment or None)

    def current_branch(self):
        """
        Name of the checked out branch, or the HEAD sha when detached.
        """
        try:
            return self.repo.active_branch.name
        except TypeError:
            return self.repo.head.commit.hexsha

    def remote_branch_refs(self, remote_url):
        """
        List the ``refs/heads/*`` names on a remote.
        """
        output = self.run(git_commands.ls_remote_heads(remote_url))
        refs = []
        for line in output.splitlines():
            _sha, _, ref = line.partition('\t')
            if ref:
                refs.append(ref.strip())
        return refs

    def context(self, remote_url):
        """
        Capture the current checkout so it can be restored later.
        """
        return RepositoryContext(local_repo=self, remote_url=remote_url, original_branch=self.current_branch())

    @contextmanager
    def restore_branch(self, restore_command):
        """
        Run ``restore_command`` when this contextmanager is finished, whether or not it failed.

        If restoring fails after an earlier error, the earlier error is the one raised.
        """
        try:
            yield self
        except Exception:
            try:
                self.run(restore_command)
            except GitCommandError as exc:
                LOG.error("Could not restore the original checkout: %s", exc)
            raise
        self.run(restore_command)


def execute_command_plan(context, command_plan, dry_run=False):
    """
    Run a CommandPlan against the working copy in ``context``.

    Arguments:
        context (RepositoryContext): Working copy to run in.
        command_plan (CommandPlan): Commands to run.
        dry_run (bool): If True, everything runs except the final push.

    Returns:
        True if the result was pushed.

    Raises:
        RebaseRecencyFailure: If the PR branch is missing its required base commit.
        git.exc.GitCommandError: If any git command fails.
    """
    local_repo = context.local_repo
    with local_repo.restore_branch(command_plan.restore):
        local_repo.run(command_plan.fetch)
        local_repo.run(command_plan.mark_base)

        pr_branch, _, required_sha = command_plan.verify_rebased.args[1:]
        try:
            contained = local_repo.run(command_plan.verify_rebased).strip()
        except GitCommandError as exc:
            if not _is_unknown_commit(exc):
                raise
            raise RebaseRecencyFailure(pr_branch, required_sha, known=False)
        if not contained:
            raise RebaseRecencyFailure(pr_branch, required_sha)

        local_repo.run(command_plan.squash)
        local_repo.run(command_plan.rewrite_messages)
        for command in command_plan.cherry_pick_master + command_plan.cherry_pick_patch:
            local_repo.run(command)

    if dry_run:
        LOG.info("Dry run, not pushing: %s", command_plan.push.render())
        return False

    local_repo.run(command_plan.push)
    return True
