"""Registry access: HTTP API client, container control path and error taxonomy."""
