# MCP (Model Context Protocol) Infrastructure
#
# This module provides the transports that carry MCP messages between a
# client and the tool dispatcher:
# - stdio: one client over standard input/output
# - http: network listener (declared, not implemented yet)
#
# Framing, request correlation and capability negotiation are handled by the
# MCP SDK.
