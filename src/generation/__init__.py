# src/generation/__init__.py — v1
"""Step execution, orchestration and staleness of generated artifacts."""
