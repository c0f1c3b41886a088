"""Bottle thermal simulation: water, ice and air in a closed container."""

__version__ = "1.0.0"
