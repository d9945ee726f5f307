# src/documents/__init__.py — v1
"""Firestore-style document store interface and reference backends."""
