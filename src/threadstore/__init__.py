"""Discord-backed stream cache and document synchronization."""
