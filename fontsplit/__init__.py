"""
fontsplit: split fonts into unicode-range subsetted WOFF2 webfonts.
"""

__version__ = "0.1.0"
