"""
Player schemas — lie profile, game state and digital assets.

These models gate ALL writes to the players collection. Dumped with
``by_alias=True`` they produce the persisted document layout
(``lieProfile``, ``gameState.currentChapter``, ``digitalAssets.paradoxCoins``...).
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from models.stories import Chapter


_DOCUMENT_CONFIG = {
    "alias_generator": to_camel,
    "populate_by_name": True,
    "validate_assignment": True,
}


def _dedupe(values: List[str]) -> List[str]:
    seen = set()
    out = []
    for v in values:
        if v not in seen:
            seen.add(v)
            out.append(v)
    return out


class LieProfile(BaseModel):
    """Bounded lie-profile traits. Mutate through TraitLedger, not directly."""

    lie_creativity: int = Field(default=5, ge=1, le=10)
    truth_resistance: int = Field(default=5, ge=1, le=10)
    paradox_aptitude: int = Field(default=1, ge=1, le=5)
    preferred_lie_types: List[str] = []

    model_config = _DOCUMENT_CONFIG


class StoryProgress(BaseModel):
    """Where a player currently stands inside one story."""

    current_node_id: str
    choices_made: int = Field(default=0, ge=0)

    model_config = _DOCUMENT_CONFIG


class GameState(BaseModel):
    current_chapter: Chapter = Chapter.AWAKENING
    completed_stories: List[str] = []
    story_progress: Dict[str, StoryProgress] = {}
    inventory: List[str] = []
    unlocked_stories: List[str] = []

    model_config = _DOCUMENT_CONFIG

    @field_validator("completed_stories", "unlocked_stories")
    @classmethod
    def no_duplicates(cls, v):
        return _dedupe(v)


class DigitalAssets(BaseModel):
    # Not clamped at zero: spend effects may push the balance negative
    paradox_coins: int = 0
    truth_fragments: List[str] = []
    fragment_tokens: Dict[str, str] = {}
    wallet_address: Optional[str] = None

    model_config = _DOCUMENT_CONFIG

    @field_validator("truth_fragments")
    @classmethod
    def no_duplicate_fragments(cls, v):
        return _dedupe(v)


class Player(BaseModel):
    """A player document: the full mutable state the engine works on."""

    player_id: str = Field(min_length=1)
    username: str = ""
    lie_profile: LieProfile = Field(default_factory=LieProfile)
    game_state: GameState = Field(default_factory=GameState)
    digital_assets: DigitalAssets = Field(default_factory=DigitalAssets)

    model_config = _DOCUMENT_CONFIG

    def owns_fragment(self, fragment_id: str) -> bool:
        return fragment_id in self.digital_assets.truth_fragments

    def has_completed(self, story_id: str) -> bool:
        return story_id in self.game_state.completed_stories

    def summary(self) -> Dict:
        """The ``userProgress`` block returned after every choice."""
        return {
            "lieProfile": self.lie_profile.model_dump(by_alias=True),
            "paradoxCoins": self.digital_assets.paradox_coins,
            "completedStories": list(self.game_state.completed_stories),
            "currentChapter": self.game_state.current_chapter.value,
        }
