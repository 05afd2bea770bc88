"""Routing configuration and cycle duration planning for manufacturing process lines."""

__version__ = "0.1.0"
