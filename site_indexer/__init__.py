"""Crawl a website into a vector store and retrieve source URLs by similarity."""

__version__ = "0.1.0"
