"""Live auction coordination server."""
