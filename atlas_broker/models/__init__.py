"""Request and wire models."""
