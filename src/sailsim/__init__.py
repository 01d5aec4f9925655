"""Patched-conics orbital mechanics for solar-sail ships."""

__version__ = "0.1.0"
