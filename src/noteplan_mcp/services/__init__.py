"""Service layer for the NotePlan MCP server."""
