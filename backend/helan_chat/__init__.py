"""Helan support chat backend: website scraping and knowledge base."""

__version__ = "0.1.0"
