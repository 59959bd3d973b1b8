"""Citadels: a console city-building card game for 4-7 players."""

__version__ = "0.1.0"
