"""Generators for both directions."""
