"""
ProgressionCoordinator — Story eligibility, start/resume and choice orchestration.

Owns the loaded stories and the ChoiceEngine. Every operation takes the
Player explicitly; there is no ambient "current user".

apply_choice() runs under a per-player lock so the read of the current
node and the final state write happen as one serializable unit, even
when a host calls in from several threads.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterable, List

from engine.choice_engine import ChoiceEngine
from engine.errors import DefinitionError, NodeNotFound, StoryLocked, StoryNotFound
from engine.fragment_registry import FragmentRegistry
from engine.story_graph import get_node, require_node, validate_story
from models.outcomes import ChoiceOutcome
from models.player import Player, StoryProgress
from models.stories import Story, StoryNode

logger = logging.getLogger("Progression")


class ProgressionCoordinator:
    """Tracks which stories a player may play and where they are in each.

    Args:
        stories: Story definitions, in display order. Ids must be unique.
        registry: Shared fragment registry.
    """

    def __init__(self, stories: Iterable[Story], registry: FragmentRegistry):
        self.registry = registry
        self.engine = ChoiceEngine(registry)
        self._stories: Dict[str, Story] = {}
        for story in stories:
            if story.id in self._stories:
                raise DefinitionError(f"Duplicate story id: {story.id}")
            validate_story(story)
            self._stories[story.id] = story

        # player_id -> [lock, holders and waiters]
        self._locks: Dict[str, list] = {}
        self._locks_guard = threading.Lock()
        logger.info(f"Progression loaded {len(self._stories)} stories")

    # ------------------------------------------------------------------
    # Stories
    # ------------------------------------------------------------------

    @property
    def stories(self) -> List[Story]:
        return list(self._stories.values())

    def get_story(self, story_id: str) -> Story:
        story = self._stories.get(story_id)
        if story is None:
            raise StoryNotFound(story_id)
        return story

    def is_eligible(self, player: Player, story: Story) -> bool:
        state = player.game_state
        if story.id in state.unlocked_stories:
            return True
        if story.is_main_story:
            return story.chapter == state.current_chapter

        # requirements.truth_fragments is carried as content data only
        req = story.requirements
        return (
            player.lie_profile.paradox_aptitude >= req.paradox_level
            and set(req.completed_stories) <= set(state.completed_stories)
        )

    def get_eligible_stories(self, player: Player) -> List[Story]:
        """Main story for the current chapter plus every side story whose requirements hold."""
        return [s for s in self._stories.values() if self.is_eligible(player, s)]

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def start_or_resume_story(self, player: Player, story_id: str) -> StoryNode:
        """Return the player's current node in ``story_id``, starting the story if needed.

        A story whose pointer sits on its exit (already finished) restarts
        from the beginning. Completion rewards are never paid twice.

        Raises:
            StoryNotFound: unknown story id.
            StoryLocked: story not in the player's eligible set.
        """
        story = self.get_story(story_id)
        if not self.is_eligible(player, story):
            raise StoryLocked(story_id)

        progress = player.game_state.story_progress.get(story_id)
        if progress is None or get_node(story, progress.current_node_id) is None:
            if progress is not None:
                logger.info(f"[{player.player_id}] replaying finished story {story_id}")
            else:
                logger.info(f"[{player.player_id}] starting story {story_id}")
            player.game_state.story_progress[story_id] = StoryProgress(
                current_node_id=story.starting_node_id
            )
        return self.current_node(player, story_id)

    def current_node(self, player: Player, story_id: str) -> StoryNode:
        """The node the player is on. NodeNotFound if the story was never started or is finished."""
        story = self.get_story(story_id)
        progress = player.game_state.story_progress.get(story_id)
        if progress is None:
            raise NodeNotFound(story_id, None)
        return require_node(story, progress.current_node_id)

    def apply_choice(self, player: Player, story_id: str, choice_index: int) -> ChoiceOutcome:
        """Apply a choice and report which stories became eligible because of it."""
        story = self.get_story(story_id)
        with self._player_lock(player.player_id):
            before = {s.id for s in self.get_eligible_stories(player)}
            outcome = self.engine.apply_choice(player, story, choice_index)
            after = [s.id for s in self.get_eligible_stories(player)]
        outcome.newly_unlocked_stories = [sid for sid in after if sid not in before]
        if outcome.newly_unlocked_stories:
            logger.info(f"[{player.player_id}] unlocked stories: {outcome.newly_unlocked_stories}")
        return outcome

    def progress_summary(self, player: Player) -> Dict[str, Dict]:
        """Per-story status: not_started, in_progress or completed, plus the current node."""
        summary = {}
        for story in self._stories.values():
            progress = player.game_state.story_progress.get(story.id)
            if player.has_completed(story.id):
                status = "completed"
            elif progress is not None:
                status = "in_progress"
            else:
                status = "not_started"
            summary[story.id] = {
                "title": story.title,
                "status": status,
                "currentNodeId": progress.current_node_id if progress else None,
                "choicesMade": progress.choices_made if progress else 0,
            }
        return summary

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------

    @contextmanager
    def _player_lock(self, player_id: str):
        """Hold the player's lock. The entry is dropped once nobody holds or waits on it."""
        with self._locks_guard:
            entry = self._locks.get(player_id)
            if entry is None:
                entry = self._locks[player_id] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[player_id]
