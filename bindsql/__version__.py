"""Version of the bindsql package."""
__version__ = "0.3.0"
