"""AI-assisted draft generation queue for a municipal CMS."""

__version__ = "1.0.0"
