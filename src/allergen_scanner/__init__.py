"""Allergen Scanner - food photo and ingredient label allergen checks."""

__version__ = "1.0.0"
