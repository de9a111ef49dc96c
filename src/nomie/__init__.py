"""
Nomie: photo and text to allergy-safe ingredient lists and recipes.
"""

__version__ = "1.0.0"
