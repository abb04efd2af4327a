"""Evolve a set of translucent circles towards a reference image."""

__version__ = "0.1.0"
