"""Configuration constants and cache locations."""
