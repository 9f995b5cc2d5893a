"""
Pytest configuration for the instance deleter tests.

Puts src/ on sys.path so the flat modules import without installation.
"""

import os
import sys

SRC_DIR = os.path.join(os.path.dirname(__file__), "src")

if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)
