"""toygrep - a concurrent, grep-like content search tool."""

__version__ = "0.3.0"
