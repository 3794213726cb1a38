"""Terminal chat that carries one conversation across coding-agent command-line tools."""

__version__ = "0.1.0"