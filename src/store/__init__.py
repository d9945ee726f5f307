# src/store/__init__.py — v1
"""Artifact persistence backends."""
