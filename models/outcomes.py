"""
Outcome schemas — what the engine hands back to its caller.

``ChoiceOutcome.to_response()`` reproduces the payload of the story
choice endpoint so any surface (Discord, HTTP) can return it as-is.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from models.fragments import CombinationRecipe, FragmentDefinition
from models.stories import Chapter, StoryRewards


class TraitDeltaResult(BaseModel):
    """A trait change as requested by the choice and the value it landed on."""

    name: str
    change: int
    value: int


class AppliedEffects(BaseModel):
    paradox_coins: int = 0
    items_added: List[str] = []
    items_removed: List[str] = []
    trait_changes: List[TraitDeltaResult] = []
    unlocked_truth: List[str] = []
    unlocked_truth_names: List[str] = []


class ChoiceOutcome(BaseModel):
    """Result of applying one choice to one player."""

    story_id: str
    next_node_id: Optional[str] = None
    applied_effects: AppliedEffects = Field(default_factory=AppliedEffects)
    story_completed: bool = False
    completion_rewards: Optional[StoryRewards] = None
    # Reward fragments the player did not already own
    reward_fragments_added: List[str] = []
    chapter_advanced_to: Optional[Chapter] = None
    newly_unlocked_stories: List[str] = []
    player: Dict[str, Any] = {}

    @property
    def all_unlocked_fragments(self) -> List[str]:
        """Fragments newly added by the choice and by completion rewards."""
        return [*self.applied_effects.unlocked_truth, *self.reward_fragments_added]

    def to_response(self) -> Dict[str, Any]:
        effects = self.applied_effects
        return {
            "nextNodeId": self.next_node_id,
            "effects": {
                "paradoxCoins": effects.paradox_coins,
                "unlockedTruth": list(effects.unlocked_truth_names),
                "traitChanges": [
                    {"name": t.name, "change": t.change, "value": t.value}
                    for t in effects.trait_changes
                ],
            },
            "storyCompleted": self.story_completed,
            "newlyUnlockedStories": list(self.newly_unlocked_stories),
            "userProgress": dict(self.player),
        }


class CombinationOutcome(BaseModel):
    recipe: CombinationRecipe
    output: FragmentDefinition
    already_owned: bool = False


class TruthAnalysis(BaseModel):
    """Scores for a player's statement. Truth score 0 is plain truth, 1 a complete lie."""

    truth_score: float = Field(default=0.5, ge=0.0, le=1.0, alias="truthScore")
    is_paradox: bool = Field(default=False, alias="isParadox")
    complexity: float = Field(default=0.5, ge=0.0, le=1.0)
    persuasiveness: float = Field(default=0.5, ge=0.0, le=1.0)
    analysis: str = ""

    model_config = {"populate_by_name": True, "extra": "allow"}
