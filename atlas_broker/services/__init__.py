"""Lifecycle services."""
