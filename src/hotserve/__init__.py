"""hotserve - a static file server for local development with live reload."""

__version__ = "0.1.0"
