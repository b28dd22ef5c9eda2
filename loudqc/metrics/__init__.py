"""Measurement stages."""
