"""Shared numeric, interpolation and date helpers."""
