"""Versioned game tables shipped with the package."""
