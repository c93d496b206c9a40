#!/usr/bin/env python3
"""
Main entry point for Dump Triage

Runs the command line triage tool without installing the package.
"""

import sys
import os

# Add the dump_triage package to Python path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from dump_triage.main import main


if __name__ == "__main__":
    sys.exit(main())
