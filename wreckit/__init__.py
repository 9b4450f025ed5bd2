"""wreckit - drive backlog items from idea to merged PR with an external coding agent."""

__version__ = "0.1.0"
