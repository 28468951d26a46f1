"""
Contextive MCP Server.

A lean, multi-provider, workflow-oriented Model Context Protocol server.
"""

__version__ = "0.1.0"

SERVER_NAME = "contextive-mcp-server"
