"""Feed filter: LLM-backed suppression of low-value items in a live feed."""

__version__ = "0.1.0"
