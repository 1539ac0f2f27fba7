"""
TraitLedger — Bounded lie-profile traits with saturating deltas.

Wraps a player's LieProfile. Every change goes through apply_delta(),
which clamps to the trait's bounds instead of wrapping or raising.
Pure Python, no I/O.
"""

import logging
from typing import Dict, Tuple

from engine.errors import UnknownTrait
from models.player import LieProfile

logger = logging.getLogger("TraitLedger")

TRAIT_BOUNDS: Dict[str, Tuple[int, int]] = {
    "lie_creativity": (1, 10),
    "truth_resistance": (1, 10),
    "paradox_aptitude": (1, 5),
}

# Story content uses the persisted camelCase names
_TRAIT_ALIASES = {
    "lieCreativity": "lie_creativity",
    "truthResistance": "truth_resistance",
    "paradoxAptitude": "paradox_aptitude",
}


def normalize_trait(name: str) -> str:
    """Map a snake_case or camelCase trait name to its attribute name.

    Raises:
        UnknownTrait: if the name is not a lie-profile trait.
    """
    key = _TRAIT_ALIASES.get(name, name)
    if key not in TRAIT_BOUNDS:
        raise UnknownTrait(name)
    return key


def clamp(trait: str, value: int) -> int:
    low, high = TRAIT_BOUNDS[normalize_trait(trait)]
    return max(low, min(high, value))


class TraitLedger:
    """Applies signed trait deltas to a LieProfile, clamped to bounds."""

    def __init__(self, profile: LieProfile):
        self.profile = profile

    def value(self, trait: str) -> int:
        return getattr(self.profile, normalize_trait(trait))

    def meets(self, trait: str, level: int) -> bool:
        """True if the trait is at or above ``level``."""
        return self.value(trait) >= level

    def apply_delta(self, trait: str, delta: int) -> int:
        """Add ``delta`` to ``trait`` and return the clamped new value."""
        key = normalize_trait(trait)
        current = getattr(self.profile, key)
        new_value = clamp(key, current + delta)
        setattr(self.profile, key, new_value)
        if new_value != current + delta:
            logger.debug(f"{key} saturated: {current} {delta:+d} -> {new_value}")
        return new_value
