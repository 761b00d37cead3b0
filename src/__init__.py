"""sitecms: content administration tooling for a marketing site."""

__version__ = "0.1.0"
