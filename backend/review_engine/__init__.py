"""Spaced repetition review engine for coding interview problems."""
