"""
Truth fragment schemas — collectible definitions and combination recipes.

Definitions are frozen once loaded. The registry shares them across
every player session without copying.
"""

from enum import Enum
from typing import FrozenSet, Optional
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


class Rarity(str, Enum):
    """Fragment rarity, ordered common < uncommon < rare < legendary."""

    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    LEGENDARY = "legendary"

    @property
    def rank(self) -> int:
        return _RARITY_ORDER.index(self)

    def __lt__(self, other):
        if not isinstance(other, Rarity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Rarity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Rarity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Rarity):
            return NotImplemented
        return self.rank >= other.rank


_RARITY_ORDER = [Rarity.COMMON, Rarity.UNCOMMON, Rarity.RARE, Rarity.LEGENDARY]


class FragmentDefinition(BaseModel):
    """Schema for a collectible truth fragment."""

    id: str = Field(min_length=1)
    name: str
    description: str = ""
    rarity: Rarity = Rarity.COMMON
    combinable: bool = False
    combinable_with: FrozenSet[str] = frozenset()
    story_source: Optional[str] = None
    image: Optional[str] = None

    model_config = {
        "frozen": True,
        "alias_generator": to_camel,
        "populate_by_name": True,
    }

    @field_validator("rarity", mode="before")
    @classmethod
    def normalize_rarity(cls, v):
        if isinstance(v, str):
            return v.lower()
        return v


class CombinationRecipe(BaseModel):
    """Exact set of input fragments that produces one output fragment."""

    inputs: FrozenSet[str]
    output: str

    model_config = {"frozen": True}

    @field_validator("inputs")
    @classmethod
    def at_least_two_inputs(cls, v):
        if len(v) < 2:
            raise ValueError("a recipe needs at least two distinct input fragments")
        return v
