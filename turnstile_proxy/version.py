"""Build version of the proxy. Release builds overwrite this file."""

__version__ = "0.3.0"
