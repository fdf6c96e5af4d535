"""Monoguard - dependency constraints for JavaScript monorepos."""

__version__ = "0.3.0"
