"""
objctl - background build-and-compare job control for split object diffs.
"""
from __future__ import annotations

__version__ = "0.1.0"
