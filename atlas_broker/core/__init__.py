"""Core session, client and error handling."""
