"""
Git commands used to land a pull request, described as data.

Each ``GitCommand`` is rendered for display and turned into an argv for
execution from the same fields, so what is logged is what runs.
"""

from collections import namedtuple
import enum
import shlex


@enum.unique
class CommandKind(enum.Enum):
    """
    Git subcommands the merge runs.
    """
    fetch = 'fetch'
    checkout = 'checkout'
    branch = 'branch'
    rebase = 'rebase'
    filter_branch = 'filter-branch'
    cherry_pick = 'cherry-pick'
    push = 'push'
    ls_remote = 'ls-remote'


class GitCommand(namedtuple('GitCommand', ['kind', 'args', 'env'])):
    """
    A single git invocation: the subcommand, its arguments and any extra environment.
    """
    __slots__ = ()

    def __new__(cls, kind, args=(), env=()):
        return super().__new__(cls, kind, tuple(args), tuple(env))

    @property
    def argv(self):
        return ['git', self.kind.value] + list(self.args)

    @property
    def environment(self):
        return dict(self.env)

    def render(self):
        prefix = ''.join('{}={} '.format(name, shlex.quote(value)) for name, value in self.env)
        return prefix + shlex.join(self.argv)


CommandPlan = namedtuple(
    'CommandPlan',
    [
        'fetch', 'mark_base', 'verify_rebased', 'squash', 'rewrite_messages',
        'cherry_pick_master', 'cherry_pick_patch', 'restore', 'push',
    ]
)


def pr_branch_name(pr_number):
    return f'pr-{pr_number}'


def base_branch_name(pr_number):
    return f'pr-{pr_number}-base'


def target_branch_name(pr_number, branch):
    return f'pr-{pr_number}-{branch}'


def fetch(remote_url, refspecs):
    return GitCommand(CommandKind.fetch, [remote_url] + list(refspecs))


def checkout(branch, start_point=None):
    if start_point is None:
        return GitCommand(CommandKind.checkout, [branch])
    return GitCommand(CommandKind.checkout, ['-B', branch, start_point])


def branch_contains(branch, commit):
    return GitCommand(CommandKind.branch, ['--list', branch, '--contains', commit])


def autosquash(upstream, branch):
    # The no-op editors accept the generated todo list and squash messages as-is.
    return GitCommand(
        CommandKind.rebase,
        ['-i', '--autosquash', upstream, branch],
        env=[('GIT_SEQUENCE_EDITOR', 'true'), ('GIT_EDITOR', 'true')],
    )


def rewrite_messages(message_filter, revision_range):
    return GitCommand(
        CommandKind.filter_branch,
        ['-f', '--msg-filter', message_filter, '--', revision_range],
        env=[('FILTER_BRANCH_SQUELCH_WARNING', '1')],
    )


def cherry_pick(revision_range):
    return GitCommand(CommandKind.cherry_pick, [revision_range])


def push(remote_url, branch_map):
    """
    Push several local branches to differently named remote branches in one call.

    Arguments:
        branch_map (list of (str, str)): (local branch, remote branch) pairs.
    """
    refspecs = ['refs/heads/{}:refs/heads/{}'.format(local, remote) for local, remote in branch_map]
    return GitCommand(CommandKind.push, [remote_url] + refspecs)


def ls_remote_heads(remote_url):
    return GitCommand(CommandKind.ls_remote, ['--heads', remote_url])


def build_command_plan(merge_plan, context, message_filter):
    """
    Lay out every git command needed to land ``merge_plan``.

    Arguments:
        merge_plan (MergePlan): What to merge, and where.
        context (RepositoryContext): The remote and the branch to return to.
        message_filter (str): Shell command that rewrites one commit message from stdin.

    Returns:
        CommandPlan
    """
    pr_number = merge_plan.pr_number
    pr_branch = pr_branch_name(pr_number)
    base_branch = base_branch_name(pr_number)
    pr_range = f'{base_branch}..{pr_branch}'

    targets = [merge_plan.master_branch]
    if merge_plan.patch_branch:
        targets.append(merge_plan.patch_branch)
    local_targets = [(target_branch_name(pr_number, branch), branch) for branch in targets]

    refspecs = [f'+pull/{pr_number}/head:{pr_branch}']
    refspecs.extend(f'+{remote}:{local}' for local, remote in local_targets)

    def _cherry_pick_onto(branch, active):
        if not active:
            return ()
        return (checkout(target_branch_name(pr_number, branch)), cherry_pick(pr_range))

    return CommandPlan(
        fetch=fetch(context.remote_url, refspecs),
        mark_base=checkout(base_branch, f'{pr_branch}~{merge_plan.commit_count}'),
        verify_rebased=branch_contains(pr_branch, merge_plan.required_base_sha),
        squash=autosquash(base_branch, pr_branch),
        rewrite_messages=rewrite_messages(message_filter, pr_range),
        cherry_pick_master=_cherry_pick_onto(merge_plan.master_branch, merge_plan.merge_master),
        cherry_pick_patch=_cherry_pick_onto(merge_plan.patch_branch, merge_plan.merge_patch),
        restore=checkout(context.original_branch),
        push=push(context.remote_url, local_targets),
    )


def iter_commands(command_plan, include_push=True):
    """
    Yield every command of a plan in the order it runs.
    """
    yield command_plan.fetch
    yield command_plan.mark_base
    yield command_plan.verify_rebased
    yield command_plan.squash
    yield command_plan.rewrite_messages
    yield from command_plan.cherry_pick_master
    yield from command_plan.cherry_pick_patch
    yield command_plan.restore
    if include_push:
        yield command_plan.push
