"""
Land labeled, green GitHub pull requests onto master and patch branches.
"""
