"""BorderWatch AI: checkpoint surveillance assistant."""

__version__ = "1.0.0"
