#!/usr/bin/env python3
"""
@file main.py
@brief Package audit tool - Main entry point

This is the main entry point for the package audit application.
It imports and runs the command line logic from pkgaudit/core/main.py.
"""

import sys
from pkgaudit.core.main import main

if __name__ == "__main__":
    sys.exit(main())
