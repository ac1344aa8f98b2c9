"""Utility helpers for gsearch."""
