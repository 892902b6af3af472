"""Question answering over remote PDF documents."""

__version__ = "1.0.0"
