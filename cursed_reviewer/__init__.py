"""Cursed Reviewer: code review findings, curse scores and haunted patches."""

__version__ = "0.3.0"

# Generation defaults shared by the analyzers and the patch forge
DEFAULT_MODEL = "anthropic/claude-3-7-sonnet-20250219"
DEFAULT_DEADLINE_SECONDS = 25.0
DEFAULT_MIN_SEVERITY = "minor"
