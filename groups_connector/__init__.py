"""Microsoft Search connector that indexes directory groups."""

__version__ = "0.1.0"
