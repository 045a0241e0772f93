"""FileDeck - sandboxed web file manager"""

__version__ = "1.0.0"
