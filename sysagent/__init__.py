"""sys-agent — aggregated health reporting for external resources."""

__version__ = "0.1.0"
