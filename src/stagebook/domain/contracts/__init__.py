"""Contract lifecycle domain."""
