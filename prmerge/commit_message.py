"""
Rewriting of commit messages as they are merged.
"""

import re
import shlex
import sys

CLOSES_FORMAT = 'Closes #{pr_number}'
TRAILER_LINE = re.compile(r'^[A-Za-z0-9-]+: \S')


def _is_trailer_block(paragraph):
    lines = paragraph.splitlines()
    return bool(lines) and all(TRAILER_LINE.match(line) for line in lines)


def add_closing_reference(message, pr_number):
    """
    Append a ``Closes #<pr_number>`` footer to a commit message.

    A message that already has the footer only gets its trailing whitespace normalized.
    When the message ends in a trailer block (``Signed-off-by: ...``) the footer
    is added to that block rather than as a new paragraph.
    """
    footer = CLOSES_FORMAT.format(pr_number=pr_number)
    body = message.rstrip()
    if re.search(r'^{}$'.format(re.escape(footer)), body, re.MULTILINE):
        return body + '\n'
    if not body:
        return footer + '\n'

    last_paragraph = body.split('\n\n')[-1]
    if last_paragraph != body and _is_trailer_block(last_paragraph):
        return '{}\n{}\n'.format(body, footer)
    return '{}\n\n{}\n'.format(body, footer)


def message_filter_command(pr_number):
    """
    Shell command that rewrites one message on stdin, for ``git filter-branch --msg-filter``.
    """
    return shlex.join([sys.executable, '-m', 'prmerge.scripts.rewrite_commit_message', str(pr_number)])
