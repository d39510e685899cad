"""Shared helpers for parsing input and rendering errors."""
