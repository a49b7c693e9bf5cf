"""ideasystem - a personal idea knowledge base with AI enrichment."""

__version__ = "0.1.0"
