"""Setup for prmerge"""
from setuptools import find_packages, setup

setup(
    name='prmerge',
    version='0.1.0',
    description='Land labeled, green GitHub pull requests onto master and the newest patch branch.',
    packages=find_packages(),
    python_requires='>=3.8',
    install_requires=[
        'click',
        'click-log',
        'GitPython',
        'PyGithub>=1.59',
    ],
    extras_require={
        'test': [
            'ddt',
            'mock',
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'merge-pr = prmerge.scripts.merge_pr:merge_pr',
            'rewrite-commit-message = prmerge.scripts.rewrite_commit_message:rewrite_commit_message',
        ],
    },
)
