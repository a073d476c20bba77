"""Document context retrieval backend for hub-based prompt generation."""

__version__ = "1.0.0"
