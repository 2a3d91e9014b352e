"""Timed media assembly: transcript words in, captioned video out."""

__version__ = "0.3.0"
