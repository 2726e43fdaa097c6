"""
Intergalactic Bank

A workshop banking API: accounts in three fictional currencies, API-key
ownership, and transfers that move funds atomically between accounts.
"""

__version__ = "1.0.0"
