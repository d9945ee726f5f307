# src/remote/__init__.py — v1
"""Remote generation capability and error classification."""
