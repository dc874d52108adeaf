# tokenable/__init__.py
"""Tokenable: personal access tokens for API authentication."""

__version__ = "0.1.0"
