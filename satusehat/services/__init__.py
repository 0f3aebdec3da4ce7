"""HTTP transport, request dispatch and per-API services."""
