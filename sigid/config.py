from __future__ import annotations

from dataclasses import dataclass

from .counter import DEFAULT_COUNTER_MAX
from .signed import DEFAULT_MAX_AGE


@dataclass
class IssuerConfig:
    max_age: int = DEFAULT_MAX_AGE
    lifeline_max_age: int = DEFAULT_MAX_AGE
    counter_max: int = DEFAULT_COUNTER_MAX
    require_complete: bool = True
