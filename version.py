"""Version of the exporter, recorded in every archive's metadata entry."""

__version__ = "1.0.0"
