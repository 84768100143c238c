"""
App module for Event Viewer application.
Contains the console front-end.
"""

from .main import build_parser, format_snapshot, main

__all__ = [
    "build_parser",
    "format_snapshot",
    "main",
]
