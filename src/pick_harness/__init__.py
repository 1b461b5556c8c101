"""pick-harness: pick objects from natural-language instructions with a local LLM."""

__version__ = "0.1.0"
