"""Region league: ranks regions across human-development metrics."""

__version__ = "0.1.0"
