"""Styled caption compiler and ffmpeg burn-in pipeline."""

__version__ = "0.1.0"
