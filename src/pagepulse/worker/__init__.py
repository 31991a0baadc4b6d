"""Long-running service entry points."""
