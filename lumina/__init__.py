"""Lumina: a timed word-recognition quiz game service."""
