"""
Tests for prmerge.git_repo.LocalGitAPI
"""

from unittest import TestCase

from git import GitCommandError, Repo
from mock import MagicMock, patch

from prmerge import git_commands
from prmerge.exception import RebaseRecencyFailure
from prmerge.git_commands import CommandKind, build_command_plan
from prmerge.git_repo import LocalGitAPI, execute_command_plan, github_ssh_url
from prmerge.merge_plan import MergePlan
from prmerge.tests.git_helpers import FakeGit, fake_repo

REMOTE_URL = 'git@github.com:edx/edx-platform.git'


def _local_repo(fake_git):
    return LocalGitAPI(fake_repo(fake_git))


def _command_plan(local_repo, merge_master=True, merge_patch=False):
    merge_plan = MergePlan(
        pr_number=500,
        commit_count=2,
        merge_master=merge_master,
        merge_patch=merge_patch,
        master_branch='master',
        patch_branch='2.0.x',
        required_base_sha='abc123',
    )
    context = local_repo.context(REMOTE_URL)
    return context, build_command_plan(merge_plan, context, 'msg-filter 500')


class LocalGitAPITestCase(TestCase):
    """
    Tests the calls using the git CLI.
    All git calls are mocked out.
    """

    @patch('prmerge.git_repo.Repo', autospec=True)
    def test_from_working_dir(self, mock_repo):
        api = LocalGitAPI.from_working_dir('/src/edx-platform')
        mock_repo.assert_called_once_with('/src/edx-platform', search_parent_directories=True)
        self.assertEqual(api.repo, mock_repo.return_value)

    def test_run_passes_env(self):
        fake_git = FakeGit()
        api = _local_repo(fake_git)
        api.run(git_commands.autosquash('base', 'pr'))
        api.run(git_commands.checkout('master'))
        self.assertEqual(fake_git.envs, [{'GIT_SEQUENCE_EDITOR': 'true', 'GIT_EDITOR': 'true'}, None])

    def test_remote_branch_refs(self):
        api = _local_repo(FakeGit())
        self.assertEqual(
            api.remote_branch_refs(REMOTE_URL),
            ['refs/heads/master', 'refs/heads/1.2.x', 'refs/heads/2.0.x']
        )

    def test_context_captures_branch(self):
        api = _local_repo(FakeGit())
        context = api.context(REMOTE_URL)
        self.assertEqual(context.original_branch, 'my-work')
        self.assertEqual(context.remote_url, REMOTE_URL)
        self.assertIs(context.local_repo, api)

    def test_current_branch_detached(self):
        mock_repo = MagicMock(spec=Repo)
        type(mock_repo).active_branch = property(MagicMock(side_effect=TypeError('detached')))
        mock_repo.head.commit.hexsha = 'deadbeef'
        self.assertEqual(LocalGitAPI(mock_repo).current_branch(), 'deadbeef')

    def test_github_ssh_url(self):
        self.assertEqual(github_ssh_url('edx', 'edx-platform'), REMOTE_URL)


class ExecuteCommandPlanTestCase(TestCase):
    """
    Tests execute_command_plan.
    """

    def test_dry_run(self):
        fake_git = FakeGit()
        context, command_plan = _command_plan(_local_repo(fake_git))

        pushed = execute_command_plan(context, command_plan, dry_run=True)

        self.assertFalse(pushed)
        self.assertEqual(fake_git.subcommands(), [
            'fetch', 'checkout', 'branch', 'rebase', 'filter-branch', 'checkout', 'cherry-pick', 'checkout',
        ])
        self.assertEqual(fake_git.calls[-1], ['git', 'checkout', 'my-work'])

    def test_push(self):
        fake_git = FakeGit()
        context, command_plan = _command_plan(_local_repo(fake_git), merge_patch=True)

        pushed = execute_command_plan(context, command_plan)

        self.assertTrue(pushed)
        self.assertEqual(fake_git.subcommands().count('cherry-pick'), 2)
        self.assertEqual(fake_git.calls[-2], ['git', 'checkout', 'my-work'])
        self.assertEqual(fake_git.calls[-1], command_plan.push.argv)
        self.assertEqual(fake_git.subcommands().count('push'), 1)

    def test_not_rebased(self):
        fake_git = FakeGit(contains_output='')
        context, command_plan = _command_plan(_local_repo(fake_git))

        with self.assertRaises(RebaseRecencyFailure) as context_manager:
            execute_command_plan(context, command_plan, dry_run=True)

        self.assertEqual(context_manager.exception.required_sha, 'abc123')
        self.assertEqual(context_manager.exception.pr_branch, 'pr-500')
        self.assertEqual(fake_git.subcommands(), ['fetch', 'checkout', 'branch', 'checkout'])
        self.assertEqual(fake_git.calls[-1], ['git', 'checkout', 'my-work'])

    def test_command_failure_restores_branch(self):
        fake_git = FakeGit(fail_on=CommandKind.cherry_pick.value)
        context, command_plan = _command_plan(_local_repo(fake_git))

        with self.assertRaises(GitCommandError):
            execute_command_plan(context, command_plan)

        self.assertEqual(fake_git.calls[-1], ['git', 'checkout', 'my-work'])
        self.assertNotIn('push', fake_git.subcommands())

    def test_restore_failure_keeps_original_error(self):
        fake_git = FakeGit(fail_on=CommandKind.checkout.value)
        context, command_plan = _command_plan(_local_repo(fake_git))

        with self.assertRaises(GitCommandError) as context_manager:
            execute_command_plan(context, command_plan)

        self.assertIn('-B', context_manager.exception.command)

    def test_required_commit_unknown(self):
        fake_git = FakeGit(contains_stderr='error: no such commit abc123')
        context, command_plan = _command_plan(_local_repo(fake_git))

        with self.assertRaises(RebaseRecencyFailure) as context_manager:
            execute_command_plan(context, command_plan)

        self.assertIn('does not exist in this repository', str(context_manager.exception))
        self.assertIn('--master-base-sha', str(context_manager.exception))
        self.assertEqual(fake_git.subcommands(), ['fetch', 'checkout', 'branch', 'checkout'])
        self.assertEqual(fake_git.calls[-1], ['git', 'checkout', 'my-work'])

    def test_contains_check_other_failure(self):
        fake_git = FakeGit(contains_stderr='fatal: not a git repository')
        context, command_plan = _command_plan(_local_repo(fake_git))

        with self.assertRaises(GitCommandError):
            execute_command_plan(context, command_plan)

        self.assertEqual(fake_git.calls[-1], ['git', 'checkout', 'my-work'])
