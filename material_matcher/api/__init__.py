"""
HTTP API
FastAPI application exposing retrieval and ingestion.
"""
