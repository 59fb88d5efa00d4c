"""savrsync - keeps a local Savr article cache in step with remote storage."""

__version__ = "0.1.0"
