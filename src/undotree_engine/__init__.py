"""Text buffer mutation engine with a branching undo tree."""

__all__ = [
    "adapters",
    "buffer",
    "runtime",
]

__version__ = "0.1.0"
