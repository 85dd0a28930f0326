"""Stepwright — declarative, config-driven installation runner."""

__version__ = "0.1.0"
