"""Version information for Support Desk."""

__version__ = "1.0.0"
