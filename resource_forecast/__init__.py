"""Resource API client, local settings and MCP server for the forecast grid."""
