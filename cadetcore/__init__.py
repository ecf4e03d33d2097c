"""Pinball table logic: geometry, projection, bitmaps, data files, settings, scores, music and timing."""

__version__ = "0.1.0"

__all__ = ["datfile", "game", "gdrv", "high_score", "maths", "midi", "proj", "settings"]