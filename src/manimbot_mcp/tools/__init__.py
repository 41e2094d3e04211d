"""FastMCP tool sub-servers."""
