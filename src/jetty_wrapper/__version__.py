"""Version information for jetty-wrapper."""

__version__ = "0.1.0"
