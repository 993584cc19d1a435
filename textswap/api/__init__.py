"""HTTP layer for textswap-service."""
