"""Read, edit and write TrueType, TTC, WOFF and WOFF2 fonts."""

__version__ = "0.1.0"