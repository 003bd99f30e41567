"""Goal tracker web application with local and OpenID Connect login."""

__version__ = "0.1.0"
