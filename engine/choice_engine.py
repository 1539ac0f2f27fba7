"""
ChoiceEngine — Applies a story choice to a player's state.

Per story-in-progress the state machine is InProgress -> Completed.
The transition fires exactly once, the first time a choice leads out
of the story's node graph. Completion adds the story to the completed
set, advances the chapter for main stories and pays the story rewards.

All effects are applied to a deep copy of the player and committed in
one step at the end. If any step fails (bad trait name, unknown
fragment, locked choice) the caller's player is left untouched.

No randomness, no I/O: the same player, story and choice index always
produce the same outcome and the same resulting state.
"""

import logging

from engine.errors import ChoiceNotEligible, NodeNotFound
from engine.fragment_registry import FragmentRegistry
from engine.story_graph import missing_prerequisites, resolve_choice
from engine.trait_ledger import TraitLedger
from models.outcomes import AppliedEffects, ChoiceOutcome, TraitDeltaResult
from models.player import Player, StoryProgress
from models.stories import ChoiceEffects, Story

logger = logging.getLogger("ChoiceEngine")


class ChoiceEngine:
    """Resolves choices and applies their effect bundles atomically."""

    def __init__(self, registry: FragmentRegistry):
        self.registry = registry

    def apply_choice(self, player: Player, story: Story, choice_index: int) -> ChoiceOutcome:
        """Apply the choice at ``choice_index`` of the player's current node.

        Effect order is fixed: add items, remove items, trait deltas,
        currency delta, truth fragment unlocks.

        Raises:
            NodeNotFound: no progress for this story, or the current node is gone.
            InvalidChoice: index out of range for the current node.
            ChoiceNotEligible: the choice's prerequisites are unmet.
            FragmentNotFound: an effect unlocks an undefined fragment.
            UnknownTrait: an effect names a trait that does not exist.
        """
        progress = player.game_state.story_progress.get(story.id)
        if progress is None:
            raise NodeNotFound(story.id, None)

        resolution = resolve_choice(story, progress.current_node_id, choice_index)
        reasons = missing_prerequisites(resolution.choice, player)
        if reasons:
            raise ChoiceNotEligible(progress.current_node_id, choice_index, reasons)

        working = player.model_copy(deep=True)
        applied = self._apply_effects(working, resolution.choice.effects)

        outcome = ChoiceOutcome(
            story_id=story.id,
            next_node_id=resolution.next_node_id,
            applied_effects=applied,
            story_completed=resolution.next_node_id is None,
        )

        if resolution.next_node_id is None and not working.has_completed(story.id):
            self._complete_story(working, story, outcome)

        working_progress = working.game_state.story_progress[story.id]
        working.game_state.story_progress[story.id] = StoryProgress(
            current_node_id=resolution.next_node_id or resolution.target_id,
            choices_made=working_progress.choices_made + 1,
        )

        # Commit: everything above succeeded
        player.lie_profile = working.lie_profile
        player.game_state = working.game_state
        player.digital_assets = working.digital_assets

        outcome.player = player.summary()
        logger.info(
            f"[{player.player_id}] {story.id}: choice {choice_index} at "
            f"'{progress.current_node_id}' -> {resolution.next_node_id or '<end>'}"
        )
        return outcome

    # ------------------------------------------------------------------
    # Effects
    # ------------------------------------------------------------------

    def _apply_effects(self, player: Player, effects: ChoiceEffects) -> AppliedEffects:
        applied = AppliedEffects()
        inventory = player.game_state.inventory

        for item in effects.add_items:
            if item not in inventory:
                inventory.append(item)
                applied.items_added.append(item)

        for item in effects.remove_items:
            if item in inventory:
                inventory.remove(item)
                applied.items_removed.append(item)

        ledger = TraitLedger(player.lie_profile)
        for change in effects.modify_traits:
            value = ledger.apply_delta(change.name, change.change)
            applied.trait_changes.append(
                TraitDeltaResult(name=change.name, change=change.change, value=value)
            )

        if effects.paradox_coins:
            player.digital_assets.paradox_coins += effects.paradox_coins
            applied.paradox_coins = effects.paradox_coins

        for fid in self._unlock_fragments(player, effects.unlock_truth):
            applied.unlocked_truth.append(fid)
            applied.unlocked_truth_names.append(self.registry.name_of(fid))

        return applied

    def _unlock_fragments(self, player: Player, fragment_ids) -> list:
        """Add each fragment not already owned. Returns the ids actually added."""
        added = []
        collection = player.digital_assets.truth_fragments
        for fid in fragment_ids:
            self.registry.require(fid)
            if fid not in collection:
                collection.append(fid)
                added.append(fid)
        return added

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def _complete_story(self, player: Player, story: Story, outcome: ChoiceOutcome) -> None:
        """Mark the story completed and pay its rewards, recording both on ``outcome``.

        Main stories move the player to the chapter after the story's own
        chapter, never past it and never backward.
        """
        state = player.game_state
        state.completed_stories.append(story.id)

        if story.is_main_story:
            target = story.chapter.next()
            if target.rank > state.current_chapter.rank:
                state.current_chapter = target
                outcome.chapter_advanced_to = target
                logger.info(f"[{player.player_id}] advanced to chapter {target.value}")

        rewards = story.rewards
        if rewards.paradox_coins:
            player.digital_assets.paradox_coins += rewards.paradox_coins
        outcome.reward_fragments_added = self._unlock_fragments(player, rewards.truth_fragments)
        for story_id in rewards.unlock_stories:
            if story_id not in state.unlocked_stories:
                state.unlocked_stories.append(story_id)
        outcome.completion_rewards = rewards

        logger.info(f"[{player.player_id}] completed story {story.id}")
