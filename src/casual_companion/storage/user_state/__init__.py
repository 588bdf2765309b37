"""Per-user state store backends."""
