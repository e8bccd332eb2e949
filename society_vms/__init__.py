"""Society visitor management — backend gateway and client core."""

__version__ = "1.0.0"
