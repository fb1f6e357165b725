"""Multi-stage build file parsing."""

from .parser import IGNORED_INSTRUCTIONS, load_buildfile, parse_buildfile

__all__ = ["IGNORED_INSTRUCTIONS", "load_buildfile", "parse_buildfile"]
