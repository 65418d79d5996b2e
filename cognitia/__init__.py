"""Cognitia - AI data intelligence engine backend."""

__version__ = "0.1.0"
