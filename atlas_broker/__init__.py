"""MongoDB Atlas dynamic database credential broker."""

__version__ = "0.1.0"
