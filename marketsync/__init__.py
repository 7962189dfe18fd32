"""Multi-marketplace listing sync: adapters, mapping, payload building and listing lifecycle"""

__version__ = "1.0.0"
