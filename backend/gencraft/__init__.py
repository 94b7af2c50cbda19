"""GenCraft — AI project & code generator backend."""

__version__ = "0.1.0"
