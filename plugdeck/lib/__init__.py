"""
Shared helpers: logging setup and typed errors.
"""
