"""Feedboard - digital signage content and feed moderation service."""

__version__ = "0.1.0"
