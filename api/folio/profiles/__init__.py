"""Author profiles."""
