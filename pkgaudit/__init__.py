"""
@file __init__.py
@brief Package audit tool initialization

@details
This package checks installed packages against a flat-file vulnerability
advisory database, organized by functional areas:
- core: Command line entry point and orchestration
- acquisition: Advisory database fetching and installed package enumeration
- caching: Configuration constants and on-disk locations
- matching: Advisory parsing, indexing and lookup
- reporting: Terminal output, JSON and HTML reports
"""

__version__ = "1.0.0"
