"""
Pydantic v2 data models — the contract for all game definitions and player state.

Every definition loaded from disk and every player write passes through
these models first. If validation fails, nothing is loaded or written.
"""

from models.fragments import Rarity, FragmentDefinition, CombinationRecipe
from models.stories import (
    Chapter,
    NodeType,
    TraitRequirement,
    TraitChange,
    ChoiceRequirements,
    ChoiceEffects,
    Choice,
    NodeContent,
    NodeMetadata,
    StoryNode,
    StoryRequirements,
    StoryRewards,
    StoryMetadata,
    Story,
)
from models.player import LieProfile, StoryProgress, GameState, DigitalAssets, Player
from models.outcomes import (
    TraitDeltaResult,
    AppliedEffects,
    ChoiceOutcome,
    CombinationOutcome,
    TruthAnalysis,
)

__all__ = [
    "Rarity",
    "FragmentDefinition",
    "CombinationRecipe",
    "Chapter",
    "NodeType",
    "TraitRequirement",
    "TraitChange",
    "ChoiceRequirements",
    "ChoiceEffects",
    "Choice",
    "NodeContent",
    "NodeMetadata",
    "StoryNode",
    "StoryRequirements",
    "StoryRewards",
    "StoryMetadata",
    "Story",
    "LieProfile",
    "StoryProgress",
    "GameState",
    "DigitalAssets",
    "Player",
    "TraitDeltaResult",
    "AppliedEffects",
    "ChoiceOutcome",
    "CombinationOutcome",
    "TruthAnalysis",
]
