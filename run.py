#!/usr/bin/env python3
"""Convenience runner for the FitZone command line.

Usage:
    python run.py score activity.json
"""
import sys

from fitzone.main import main

if __name__ == "__main__":
    sys.exit(main())
