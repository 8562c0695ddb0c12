"""
Material Matcher
Multi-field similarity retrieval for reusable construction materials.
"""

__version__ = "0.1.0"
