"""mediagrab - background media acquisition service."""

__version__ = "0.1.0"
