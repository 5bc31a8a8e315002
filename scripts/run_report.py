#!/usr/bin/env python3
"""
Run the shift report from a checkout without installing it
Uses the credentials configured in .env or the environment
"""
import sys
import os

# Add the project directory to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from shift_report.cli import main

if __name__ == "__main__":
    sys.exit(main())
