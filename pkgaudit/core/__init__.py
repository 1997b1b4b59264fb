"""Command line orchestration."""
