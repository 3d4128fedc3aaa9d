"""Full-account exporter for the Favro REST API."""

__version__ = "0.1.0"
