"""OAuth2 login callback handling for Python web applications."""

__version__ = "0.1.0"
