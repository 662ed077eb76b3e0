"""Batch import of photo/video collections into shared memories."""

__version__ = "0.1.0"
