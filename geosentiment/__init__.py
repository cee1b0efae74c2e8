"""Regional sentiment aggregation and similarity-profile clustering."""

__version__ = "0.1.0"
