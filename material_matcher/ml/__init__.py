"""Embedding, retrieval and search components."""
