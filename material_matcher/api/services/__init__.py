"""
API Services
Services backing the API endpoints.
"""

from .text_encoder import TextEncoderService, classification_text, get_text_encoder_service

__all__ = [
    "TextEncoderService",
    "classification_text",
    "get_text_encoder_service",
]
