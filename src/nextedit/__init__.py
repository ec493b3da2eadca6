"""nextedit - dependency-aware multi-edit review engine."""

__version__ = "0.1.0"
