"""
Domain entity for a (mock) trading recommendation.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Recommendation:
    ticker: str
    signal_type: str
    reason: str
