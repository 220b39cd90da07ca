# tapesig/__init__.py
"""
Tapesig: verification of signatures asserted over tape data of BOB-style transactions.
Rebuilds the canonical message from tape cells, normalizes base64/hex/address inputs,
and supports parent → child chained signatures with optional timestamp binding.

Crypto and tape access are injected capabilities, so everything can run against fakes.
"""

__version__ = "0.2.0"
