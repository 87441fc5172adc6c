"""StageBook - contract signing and booking notifications."""

__version__ = "0.4.0"
