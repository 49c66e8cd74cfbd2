""" Provides Access to the GitHub API """

from collections import namedtuple
import logging
import re

from github import Auth, Github

LOG = logging.getLogger(__name__)
LOG.setLevel(logging.INFO)

ACTION_LABEL_PATTERN = r'^PR action:'
TARGET_LABEL_PATTERN = r'^PR target:'
CLA_LABEL_PATTERN = r'^cla'

# Some status providers append qualifier text after a '|' in the description.
STATUS_DESCRIPTION_SEPARATOR = '|'

PullRequestState = namedtuple(
    'PullRequestState',
    ['commit_count', 'status_description', 'labels', 'title', 'html_url']
)


def first_matching_label(labels, pattern):
    """
    Return the first label name matching ``pattern``, or an empty string.

    Arguments:
        labels (iterable of str): Label names, in the order GitHub returned them.
        pattern (str): Regex matched against the start of each name.
    """
    regex = re.compile(pattern)
    for name in labels:
        if regex.match(name):
            return name
    return ''


def extract_status_description(statuses):
    """
    Take the description of the newest status in a statuses collection,
    dropping anything after the first '|'.
    """
    if not statuses:
        return ''
    description = statuses[0].get('description') or ''
    return description.split(STATUS_DESCRIPTION_SEPARATOR)[0].strip()


class GitHubAPI:
    """
    Manages requests to the GitHub api for a given org/repo
    """

    def __init__(self, org, repo, token=None):
        """
        Creates a new API access object.

        Arguments:
            org (string): Github org to access
            repo (string): Github repo to access
            token (string): Github API access token. Requests are unauthenticated when missing.
        """
        if token:
            self.github_connection = Github(auth=Auth.Token(token))
        else:
            self.github_connection = Github()
        self.org = org
        self.repo = repo
        # Lazy, so that no request is made until a pull request is looked up.
        self.github_repo = self.github_connection.get_repo(f'{org}/{repo}', lazy=True)

    def get_pull_request(self, pr_number):
        """
        Given a PR number, return the PR object.

        Arguments:
            pr_number (int): Number of PR to get.

        Returns:
            github.PullRequest.PullRequest

        Raises:
            github.GithubException.GithubException: Unknown errors from github
            github.GithubException.UnknownObjectException: If the PR ID does not exist
        """
        return self.github_repo.get_pull(pr_number)

    def get_status_description(self, pull_request):
        """
        Follow the statuses link of a pull request and return the newest status description.

        Arguments:
            pull_request (github.PullRequest.PullRequest): PR whose head commit statuses are read.

        Returns:
            str: The description, trimmed of any '|' qualifier. Empty if there are no statuses.
        """
        statuses_url = pull_request.raw_data['_links']['statuses']['href']
        _, statuses = pull_request._requester.requestJsonAndCheck(  # pylint: disable=protected-access
            "GET",
            statuses_url,
        )
        return extract_status_description(statuses)

    def get_label_names(self, pull_request):
        """
        Return the names of all labels on a pull request.
        """
        return [label.name for label in pull_request.get_labels()]

    def fetch_pr_state(self, pr_number):
        """
        Gather everything needed to decide whether a PR can be merged.

        Arguments:
            pr_number (int): Number of PR to check.

        Returns:
            PullRequestState
        """
        pull_request = self.get_pull_request(pr_number)
        status_description = self.get_status_description(pull_request)
        labels = self.get_label_names(pull_request)
        LOG.info(
            "PR #%s has %s commit(s), status '%s' and labels %s.",
            pr_number, pull_request.commits, status_description, labels
        )
        return PullRequestState(
            commit_count=pull_request.commits,
            status_description=status_description,
            labels=labels,
            title=pull_request.title,
            html_url=pull_request.html_url,
        )
