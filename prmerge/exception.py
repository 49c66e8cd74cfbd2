"""
Exceptions raised while landing a pull request.
"""


class MergeError(Exception):
    pass


class GateFailure(MergeError):
    """
    Raised when a pull request does not satisfy a precondition for merging.
    No local changes have been made when this is raised.
    """
    pass


class StatusCheckFailure(GateFailure):
    pass


class UnknownTargetFormat(GateFailure):
    def __init__(self, label):
        self.label = label
        self.message = f"Unknown PR target format: '{label}'"
        super().__init__(self.message)

    def __str__(self):
        return self.message


class RebaseRecencyFailure(MergeError):
    """
    Raised when the pull request branch does not contain the commit required
    to be merged, meaning it has to be rebased by hand first.
    """
    def __init__(self, pr_branch, required_sha, known=True):
        self.pr_branch = pr_branch
        self.required_sha = required_sha
        if known:
            self.message = (
                f"Branch '{pr_branch}' does not contain required commit {required_sha}. "
                "Rebase the pull request onto a newer base and try again."
            )
        else:
            self.message = (
                f"Required commit {required_sha} does not exist in this repository, so "
                f"branch '{pr_branch}' cannot be checked. Pass the right commit with "
                "--master-base-sha or --patch-base-sha."
            )
        super().__init__(self.message)

    def __str__(self):
        return self.message


class PatchBranchNotFound(MergeError):
    pass
