"""
Gem Garden match-3 engine: shared core, authoritative server and predictive client.
"""

__version__ = "0.4.0"
