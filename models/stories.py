"""
Story schemas — chapters, nodes, choices, requirements and rewards.

Field names follow the persisted camelCase layout (``startingNodeId``,
``nextNodeId``, ``modifyTraits``...) through an alias generator, while
Python code uses snake_case attributes.
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


_DEFINITION_CONFIG = {
    "frozen": True,
    "alias_generator": to_camel,
    "populate_by_name": True,
}


class Chapter(str, Enum):
    """Main-story arcs, in the order a player moves through them."""

    AWAKENING = "awakening"
    TRAINING = "training"
    SUBVERSION = "subversion"

    @property
    def rank(self) -> int:
        return list(Chapter).index(self)

    def next(self) -> "Chapter":
        """The following chapter; subversion is terminal and returns itself."""
        order = list(Chapter)
        return order[min(self.rank + 1, len(order) - 1)]


class NodeType(str, Enum):
    NARRATIVE = "narrative"
    DIALOGUE = "dialogue"
    PUZZLE = "puzzle"
    PARADOX = "paradox"
    CHOICE = "choice"
    DYNAMIC = "dynamic"


class TraitRequirement(BaseModel):
    """Minimum trait level a choice requires."""

    name: str
    level: int

    model_config = _DEFINITION_CONFIG


class TraitChange(BaseModel):
    """Signed trait delta fired by a choice."""

    name: str
    change: int

    model_config = _DEFINITION_CONFIG


class ChoiceRequirements(BaseModel):
    items: List[str] = []
    traits: List[TraitRequirement] = []
    truth: List[str] = []

    model_config = _DEFINITION_CONFIG


class ChoiceEffects(BaseModel):
    add_items: List[str] = []
    remove_items: List[str] = []
    modify_traits: List[TraitChange] = []
    unlock_truth: List[str] = []
    paradox_coins: int = 0

    model_config = _DEFINITION_CONFIG


class Choice(BaseModel):
    """A player-selectable transition out of a node."""

    text: str
    next_node_id: str
    requires: Optional[ChoiceRequirements] = None
    effects: ChoiceEffects = Field(default_factory=ChoiceEffects)
    # 0 is plain truth, 5 is complete paradox
    truth_level: int = Field(default=0, ge=0, le=5)
    truth_reveal_factor: float = 0.0

    model_config = _DEFINITION_CONFIG


class NodeContent(BaseModel):
    text: str = ""
    image: Optional[str] = None
    background: Optional[str] = None
    audio: Optional[str] = None

    model_config = _DEFINITION_CONFIG


class NodeMetadata(BaseModel):
    location: Optional[str] = None
    characters: List[str] = []
    mood: Optional[str] = None
    time_period: Optional[str] = None

    model_config = _DEFINITION_CONFIG


class StoryNode(BaseModel):
    """A unit of narrative content with zero or more choices."""

    node_id: str = Field(min_length=1)
    content: NodeContent = Field(default_factory=NodeContent)
    type: NodeType = NodeType.NARRATIVE
    choices: List[Choice] = []
    metadata: NodeMetadata = Field(default_factory=NodeMetadata)

    model_config = _DEFINITION_CONFIG

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        if isinstance(v, str):
            return v.lower()
        return v


class StoryRequirements(BaseModel):
    completed_stories: List[str] = []
    paradox_level: int = Field(default=1, ge=1, le=5)
    truth_fragments: List[str] = []

    model_config = _DEFINITION_CONFIG


class StoryRewards(BaseModel):
    paradox_coins: int = 0
    truth_fragments: List[str] = []
    unlock_stories: List[str] = []

    model_config = _DEFINITION_CONFIG


class StoryMetadata(BaseModel):
    author: Optional[str] = None
    difficulty: int = Field(default=1, ge=1, le=5)
    estimated_time: Optional[int] = None  # minutes
    tags: List[str] = []

    model_config = _DEFINITION_CONFIG


class Story(BaseModel):
    """A directed graph of nodes, entered at ``starting_node_id``."""

    id: str = Field(min_length=1)
    title: str
    chapter: Chapter
    description: str = ""
    is_main_story: bool = False
    starting_node_id: str
    nodes: List[StoryNode] = []
    requirements: StoryRequirements = Field(default_factory=StoryRequirements)
    rewards: StoryRewards = Field(default_factory=StoryRewards)
    metadata: StoryMetadata = Field(default_factory=StoryMetadata)

    model_config = _DEFINITION_CONFIG

    @field_validator("chapter", mode="before")
    @classmethod
    def normalize_chapter(cls, v):
        if isinstance(v, str):
            return v.lower()
        return v
