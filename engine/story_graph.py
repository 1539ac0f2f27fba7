"""
StoryGraph — Node lookup, choice resolution and prerequisite checks.

A story is a directed graph of nodes; each choice points at a next node
id. A choice whose target is not a node of the story is the story's
exit: resolve_choice() returns next_node_id=None for it, which callers
treat as completion, not as an error.

Stateless. Stories are frozen after load and safe to share.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

from engine.errors import DefinitionError, InvalidChoice, NodeNotFound, UnknownTrait
from engine.trait_ledger import TraitLedger
from models.player import Player
from models.stories import Choice, Story, StoryNode

logger = logging.getLogger("StoryGraph")


@dataclass(frozen=True)
class ChoiceResolution:
    """Where a choice leads. ``next_node_id`` is None at a story exit."""

    next_node_id: Optional[str]
    choice: Choice
    target_id: str


def _index(story: Story) -> Dict[str, StoryNode]:
    return {node.node_id: node for node in story.nodes}


def get_node(story: Story, node_id: Optional[str]) -> Optional[StoryNode]:
    if node_id is None:
        return None
    for node in story.nodes:
        if node.node_id == node_id:
            return node
    return None


def require_node(story: Story, node_id: Optional[str]) -> StoryNode:
    node = get_node(story, node_id)
    if node is None:
        raise NodeNotFound(story.id, node_id)
    return node


def resolve_choice(story: Story, current_node_id: str, choice_index: int) -> ChoiceResolution:
    """Resolve a choice by index at ``current_node_id``.

    Raises:
        NodeNotFound: the current node is not part of the story.
        InvalidChoice: ``choice_index`` is outside the node's choice list.
    """
    node = require_node(story, current_node_id)
    if not isinstance(choice_index, int) or not 0 <= choice_index < len(node.choices):
        raise InvalidChoice(node.node_id, choice_index, len(node.choices))

    choice = node.choices[choice_index]
    next_node = get_node(story, choice.next_node_id)
    return ChoiceResolution(
        next_node_id=next_node.node_id if next_node else None,
        choice=choice,
        target_id=choice.next_node_id,
    )


# ---------------------------------------------------------------------------
# Prerequisites
# ---------------------------------------------------------------------------

def missing_prerequisites(choice: Choice, player: Player) -> List[str]:
    """Human-readable list of unmet requirements. Empty means eligible."""
    requires = choice.requires
    if requires is None:
        return []

    missing = []
    inventory = set(player.game_state.inventory)
    for item in requires.items:
        if item not in inventory:
            missing.append(f"requires item '{item}'")

    ledger = TraitLedger(player.lie_profile)
    for req in requires.traits:
        try:
            if not ledger.meets(req.name, req.level):
                missing.append(f"requires {req.name} {req.level} (have {ledger.value(req.name)})")
        except UnknownTrait:
            missing.append(f"requires unknown trait '{req.name}'")

    owned = set(player.digital_assets.truth_fragments)
    for truth in requires.truth:
        if truth not in owned:
            missing.append(f"requires truth fragment '{truth}'")
    return missing


def meets_prerequisites(choice: Choice, player: Player) -> bool:
    """All item, trait-threshold and truth requirements hold."""
    return not missing_prerequisites(choice, player)


def available_choices(node: StoryNode, player: Player) -> List[Tuple[int, Choice, bool]]:
    """Every choice at ``node`` as (index, choice, eligible)."""
    return [(i, c, meets_prerequisites(c, player)) for i, c in enumerate(node.choices)]


# ---------------------------------------------------------------------------
# Load-time validation
# ---------------------------------------------------------------------------

def validate_story(story: Story) -> None:
    """Reject stories with duplicate node ids or a missing starting node.

    Raises:
        DefinitionError: describing the first problem found.
    """
    seen: Set[str] = set()
    for node in story.nodes:
        if node.node_id in seen:
            raise DefinitionError(f"Story '{story.id}' has duplicate node id '{node.node_id}'")
        seen.add(node.node_id)
    if story.starting_node_id not in seen:
        raise DefinitionError(
            f"Story '{story.id}' starting node '{story.starting_node_id}' does not exist"
        )


def unreachable_nodes(story: Story) -> List[str]:
    """Node ids that no path from the starting node can reach."""
    index = _index(story)
    reached: Set[str] = set()
    queue = deque([story.starting_node_id])
    while queue:
        node_id = queue.popleft()
        if node_id in reached or node_id not in index:
            continue
        reached.add(node_id)
        for choice in index[node_id].choices:
            queue.append(choice.next_node_id)
    return [n.node_id for n in story.nodes if n.node_id not in reached]
