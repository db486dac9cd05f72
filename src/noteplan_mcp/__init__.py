"""
NotePlan MCP - exposes a NotePlan note tree as a Model Context Protocol server.

Calendar (daily) notes and regular notes live as plain-text files under two
category roots. This package reads, searches, creates, edits, renames and
moves them while keeping filenames unique and folders consistent.

This version uses synchronous operations.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("noteplan-mcp")
except PackageNotFoundError:
    __version__ = "1.0.0"
