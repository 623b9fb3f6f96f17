"""Availability engine: interval merging and member classification."""
