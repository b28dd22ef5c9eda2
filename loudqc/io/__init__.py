"""Decode and media-engine adapters."""
