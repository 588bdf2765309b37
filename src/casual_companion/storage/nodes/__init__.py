"""Memory node store backends."""
