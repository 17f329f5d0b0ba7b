"""
HexForge - a hex-grid world map editor with regional encounter tables.
"""

__version__ = "0.1.0"
