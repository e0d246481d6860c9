"""Clinical encounter scheduling and artifact tracking API."""

__version__ = "0.1.0"
