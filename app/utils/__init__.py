"""Utility helpers for the ReelNest backend.

Submodules:
- timeutils: UTC clock and naive→aware normalization
- maintenance: scheduled trial/invite expiry with a Redis lock
"""

__all__: list[str] = []
