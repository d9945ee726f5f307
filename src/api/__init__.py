# src/api/__init__.py — v1
"""Public entry points for building and driving an orchestrator."""
