"""MCP server for NotePlan notes."""
