"""Per-client admission control for HTTP services."""
