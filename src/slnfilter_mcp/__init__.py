"""Reduce Visual Studio solutions to a chosen set of projects and their dependencies."""

__version__ = "0.1.0"
