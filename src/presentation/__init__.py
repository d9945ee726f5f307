# src/presentation/__init__.py — v1
