"""Utility helpers for fastlypurge."""
