"""
Order-relevance engine.

Finds the stored marketplace orders that reference tokens a wallet holds.
"""

__version__ = "1.0.0"
