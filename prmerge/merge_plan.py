"""
Gate checks on a pull request and the branch plan for merging it.
"""

from collections import namedtuple
import logging
import re

from .exception import GateFailure, PatchBranchNotFound, StatusCheckFailure, UnknownTargetFormat
from .github_api import ACTION_LABEL_PATTERN, CLA_LABEL_PATTERN, TARGET_LABEL_PATTERN, first_matching_label

LOG = logging.getLogger(__name__)
LOG.setLevel(logging.INFO)

MERGE_ACTION = 'PR action: merge'
CLA_SIGNED = 'cla: yes'
CHECKS_PASSED = 'All checks passed!'

TARGET_MASTER_AND_PATCH = 'PR target: master & patch'
TARGET_MASTER_ONLY = 'PR target: master-only'
TARGET_PATCH_ONLY = 'PR target: patch-only'

MASTER_BRANCH = 'master'
PATCH_BRANCH_REF = re.compile(r'^refs/heads/(?P<branch>\d+\.\d+\.x)$')

# Branches have to contain the CI migration commit of their target before
# they can be merged there.
REQUIRED_MASTER_BASE_SHA = '6b6a8a9cf5b5c1e1e2e4d3c7f0a9b8d7c6e5f4a3'
REQUIRED_PATCH_BASE_SHA = '3e0d1c2b4a5968778695a4b3c2d1e0f9a8b7c6d5'

MergeTargets = namedtuple('MergeTargets', ['merge_master', 'merge_patch'])

TARGETS_BY_LABEL = {
    TARGET_MASTER_AND_PATCH: MergeTargets(merge_master=True, merge_patch=True),
    TARGET_MASTER_ONLY: MergeTargets(merge_master=True, merge_patch=False),
    TARGET_PATCH_ONLY: MergeTargets(merge_master=False, merge_patch=True),
}

MergePlan = namedtuple(
    'MergePlan',
    [
        'pr_number', 'commit_count', 'merge_master', 'merge_patch',
        'master_branch', 'patch_branch', 'required_base_sha',
    ]
)


def evaluate_gates(pr_state, force=False):
    """
    Check that a pull request is labeled and tested for merging.

    Arguments:
        pr_state (PullRequestState): The PR as fetched from GitHub.
        force (bool): If True, a failing status check only logs a warning.

    Returns:
        MergeTargets: Which branches the PR should land on.

    Raises:
        GateFailure: If any check fails.
    """
    action_label = first_matching_label(pr_state.labels, ACTION_LABEL_PATTERN)
    if MERGE_ACTION not in action_label:
        raise GateFailure(f"Expected '{MERGE_ACTION}' label, found '{action_label}'.")

    cla_label = first_matching_label(pr_state.labels, CLA_LABEL_PATTERN)
    if cla_label != CLA_SIGNED:
        raise GateFailure(f"Expected '{CLA_SIGNED}' label, found '{cla_label}'.")

    if pr_state.status_description != CHECKS_PASSED:
        message = f"Status checks have not passed: '{pr_state.status_description}'."
        if not force:
            raise StatusCheckFailure(message)
        LOG.warning("%s Continuing because --force was given.", message)

    target_label = first_matching_label(pr_state.labels, TARGET_LABEL_PATTERN)
    if target_label not in TARGETS_BY_LABEL:
        raise UnknownTargetFormat(target_label)
    return TARGETS_BY_LABEL[target_label]


def select_patch_branch(refs):
    """
    Pick the newest patch branch from a list of remote refs.

    Only refs of the form ``refs/heads/<major>.<minor>.x`` count. They are ordered
    as strings, so ``1.2.x`` sorts above ``1.10.x``.

    Returns:
        str or None: The branch name, without the ``refs/heads/`` prefix.
    """
    branches = []
    for ref in refs:
        match = PATCH_BRANCH_REF.match(ref)
        if match:
            branches.append(match.group('branch'))
    if not branches:
        return None
    return sorted(branches, reverse=True)[0]


def required_base_sha(merge_master, merge_patch,
                      master_base_sha=REQUIRED_MASTER_BASE_SHA, patch_base_sha=REQUIRED_PATCH_BASE_SHA):
    if merge_master:
        return master_base_sha
    if merge_patch:
        return patch_base_sha
    return None


def build_merge_plan(pr_number, commit_count, targets, patch_branch,
                     master_base_sha=REQUIRED_MASTER_BASE_SHA, patch_base_sha=REQUIRED_PATCH_BASE_SHA):
    """
    Combine the merge targets with the discovered branches.

    Arguments:
        master_base_sha (str): Commit a PR branch must contain to land on master.
        patch_base_sha (str): Commit a PR branch must contain to land on the patch branch only.

    Raises:
        PatchBranchNotFound: If the PR targets the patch branch but the remote has none.
    """
    if targets.merge_patch and not patch_branch:
        raise PatchBranchNotFound("No '<major>.<minor>.x' branch found on the remote.")

    plan = MergePlan(
        pr_number=pr_number,
        commit_count=commit_count,
        merge_master=targets.merge_master,
        merge_patch=targets.merge_patch,
        master_branch=MASTER_BRANCH,
        patch_branch=patch_branch,
        required_base_sha=required_base_sha(
            targets.merge_master, targets.merge_patch, master_base_sha, patch_base_sha
        ),
    )
    LOG.info(
        "Merging PR #%s into %s.", pr_number,
        ' and '.join(
            branch for branch, active in (
                (plan.master_branch, plan.merge_master),
                (plan.patch_branch, plan.merge_patch),
            ) if active
        )
    )
    return plan
