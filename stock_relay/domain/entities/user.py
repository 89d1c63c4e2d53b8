"""
Domain entity for a registered relay user.
Zero external dependencies, pure Python dataclass only.
"""

from dataclasses import dataclass, field


@dataclass
class User:
    email: str
    token: str
    subscribed_stocks: list[str] = field(default_factory=list)
