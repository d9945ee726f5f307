# src/core/__init__.py — v1
"""Domain models and exceptions shared by every module."""
