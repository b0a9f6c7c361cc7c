"""
MOSDAC HelpBot

Question answering over MOSDAC satellite documentation, combining a
lightweight knowledge graph built from pattern-based entity extraction with
retrieval-augmented generation and deterministic fallback answers.
"""

__version__ = "1.0.0"
__author__ = "MOSDAC HelpBot Team"
