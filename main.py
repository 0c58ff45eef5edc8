#!/usr/bin/env python3
"""
Galaxy Hand Control launcher for a source checkout.

Usage:
    python main.py [--camera 1] [--refresh-hz 30] [--no-preview]
"""

import sys

from galaxy_control.app import main

if __name__ == "__main__":
    sys.exit(main())
