#!/usr/bin/env python3
"""Convenience runner for the route tracker CLI.

Usage:
    python run.py replay --route route.geojson --fixes walk.csv
"""
import sys

from route_tracker.main import main

if __name__ == "__main__":
    sys.exit(main())
