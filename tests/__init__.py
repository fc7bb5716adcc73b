"""
claude-ensemble test suite.

End-to-end tests drive real subprocesses through a fake assistant
script (see helpers.py) instead of the Claude CLI.
"""
