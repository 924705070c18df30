"""
Shared helpers for text matching and cell coercion.
"""
