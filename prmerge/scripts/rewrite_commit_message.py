#! /usr/bin/env python3

"""
Command-line filter that adds a closing reference to a commit message.
"""

import click

from prmerge.commit_message import add_closing_reference


@click.command("rewrite_commit_message")
@click.argument('pr_number', type=int)
def rewrite_commit_message(pr_number):
    """
    Read a commit message on stdin and write it to stdout with a "Closes #PR_NUMBER" footer.
    """
    message = click.get_text_stream('stdin').read()
    click.echo(add_closing_reference(message, pr_number), nl=False)


if __name__ == "__main__":
    rewrite_commit_message()  # pylint: disable=no-value-for-parameter
