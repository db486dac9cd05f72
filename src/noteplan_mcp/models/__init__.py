"""Domain models for the NotePlan MCP server."""
