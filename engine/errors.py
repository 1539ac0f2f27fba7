"""
Story Engine Error Types — Structured exception hierarchy.

Lets callers distinguish data-integrity failures (missing node) from
recoverable player-facing ones (locked story, unmet prerequisites) so
the surface can decide what to tell the player. Nothing here is retried.
"""

from typing import List, Optional


class StoryEngineError(Exception):
    """Base class for all game-logic errors surfaced to the caller."""
    pass


class NodeNotFound(StoryEngineError):
    """Referenced node id is absent from the story, or progress was never initialized."""

    def __init__(self, story_id: str, node_id: Optional[str]):
        self.story_id = story_id
        self.node_id = node_id
        if node_id is None:
            msg = f"No progress recorded for story '{story_id}'"
        else:
            msg = f"Node '{node_id}' not found in story '{story_id}'"
        super().__init__(msg)


class InvalidChoice(StoryEngineError):
    """Choice index out of range for the current node. User-input error."""

    def __init__(self, node_id: str, choice_index: int, choice_count: int):
        self.node_id = node_id
        self.choice_index = choice_index
        self.choice_count = choice_count
        super().__init__(
            f"Choice {choice_index} is not valid at node '{node_id}' "
            f"({choice_count} choice(s) available)"
        )


class ChoiceNotEligible(StoryEngineError):
    """Choice prerequisites are unmet. Recoverable; ``reasons`` explains why."""

    def __init__(self, node_id: str, choice_index: int, reasons: List[str]):
        self.node_id = node_id
        self.choice_index = choice_index
        self.reasons = list(reasons)
        detail = "; ".join(self.reasons) if self.reasons else "prerequisites not met"
        super().__init__(f"Choice {choice_index} at node '{node_id}' is locked: {detail}")


class StoryLocked(StoryEngineError):
    """Story is not in the player's eligible set. Recoverable."""

    def __init__(self, story_id: str):
        self.story_id = story_id
        super().__init__(f"Story '{story_id}' is locked")


class StoryNotFound(StoryEngineError):
    """No story with this id was loaded."""

    def __init__(self, story_id: str):
        self.story_id = story_id
        super().__init__(f"Story '{story_id}' not found")


class NoMatchingRecipe(StoryEngineError):
    """Combination attempted with no recipe for the exact selected set. Recoverable."""

    def __init__(self, fragment_ids):
        self.fragment_ids = sorted(set(fragment_ids))
        super().__init__(f"No recipe combines {', '.join(self.fragment_ids) or 'nothing'}")


class FragmentNotFound(StoryEngineError):
    """Referenced fragment id has no definition."""

    def __init__(self, fragment_id: str):
        self.fragment_id = fragment_id
        super().__init__(f"Fragment '{fragment_id}' not found")


class FragmentNotOwned(StoryEngineError):
    """Player tried to combine a fragment they have not discovered."""

    def __init__(self, fragment_id: str):
        self.fragment_id = fragment_id
        super().__init__(f"Fragment '{fragment_id}' has not been discovered")


class PlayerDocumentInvalid(StoryEngineError):
    """Stored player document fails validation. It is never loaded or overwritten."""

    def __init__(self, player_id: str):
        self.player_id = player_id
        super().__init__(f"Stored profile for player '{player_id}' is invalid and was not loaded")


class DefinitionError(Exception):
    """Story, fragment or recipe definitions are inconsistent. Raised at load time."""
    pass


class DuplicateRecipe(DefinitionError):
    """Two recipes share the same input set, so a match would be ambiguous."""

    def __init__(self, inputs):
        self.inputs = sorted(inputs)
        super().__init__(f"Duplicate recipe input set: {', '.join(self.inputs)}")


class UnknownTrait(ValueError):
    """Trait name is not one of the lie-profile traits. Programming/data error."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown trait '{name}'")
