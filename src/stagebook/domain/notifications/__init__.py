"""Contract notification, template and reminder domain."""
