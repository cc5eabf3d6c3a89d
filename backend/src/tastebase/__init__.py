"""
Tastebase - realtime collaboration service for recipe pages
"""

__version__ = "1.0.0"
