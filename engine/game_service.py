"""
GameService — Async orchestration around the story engine.

The engine is synchronous and never touches I/O. This service does the
surrounding work for a multi-session host (the Discord bot):

  load player -> engine call -> mint new fragments -> save player -> log event

Each player's sequence runs under its own asyncio.Lock, so two commands
from the same player can never interleave their read and write.

Narration and minting are injected capabilities:
  narrator(node, player, story) -> text      (awaitable)
  minter(owner_id, fragment_metadata) -> token_id  (sync or awaitable)
"""

import asyncio
import inspect
import logging
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from engine.definitions_loader import GameDefinitions
from engine.errors import NodeNotFound
from engine.story_graph import available_choices, get_node
from models.player import Player
from models.stories import NodeType, Story, StoryNode

logger = logging.getLogger("GameService")

Narrator = Callable[[StoryNode, Player, Story], Awaitable[str]]
Minter = Callable[[str, Dict[str, Any]], Any]

PARADOX_LEVELS: List[Dict[str, Any]] = [
    {
        "id": "lie",
        "name": "Lie Level",
        "description": "Basic fabrications and simple untruths",
        "requirements": "None - available to all players",
        "abilities": ["Basic story manipulation", "Simple deception tactics"],
    },
    {
        "id": "contradiction",
        "name": "Contradiction Level",
        "description": "Statements that contradict established facts",
        "requirements": "Complete at least one Awakening story",
        "abilities": ["Access to side quests", "Ability to influence NPC trust"],
    },
    {
        "id": "paradox",
        "name": "Paradox Level",
        "description": "Self-referential statements that create logical paradoxes",
        "requirements": "Paradox Aptitude of at least 3",
        "abilities": ["Access to advanced story branches", "Truth fragment combination"],
    },
    {
        "id": "hyperreal",
        "name": "Hyperreal Level",
        "description": "Lies that are more convincing than the truth itself",
        "requirements": "Lie Creativity of at least 8",
        "abilities": ["Truth manipulation", "Reality distortion within narratives"],
    },
    {
        "id": "metatruth",
        "name": "Meta-Truth Level",
        "description": "Transcendent understanding of the nature of truth itself",
        "requirements": "Complete the Training chapter",
        "abilities": ["Access to hidden story content", "Ability to create custom paradoxes"],
    },
]


class GameService:
    """Player-facing game operations backed by a player store.

    Args:
        definitions: Loaded stories, fragments and recipes.
        store: Player persistence (StateManager or anything with
            get_or_create_player / save_player / log_choice / log_combination).
        narrator: Optional text generator for dynamic nodes.
        minter: Optional token minter called for each newly unlocked fragment.
        analyst: Optional TruthAnalystAgent for statement analysis.
        enable_narration: Only call the narrator when True.
    """

    def __init__(
        self,
        definitions: GameDefinitions,
        store,
        narrator: Optional[Narrator] = None,
        minter: Optional[Minter] = None,
        analyst=None,
        enable_narration: bool = False,
    ):
        self.registry = definitions.registry
        self.progression = definitions.progression
        self.store = store
        self.narrator = narrator
        self.minter = minter
        self.analyst = analyst
        self.enable_narration = enable_narration
        # player_id -> [lock, holders and waiters]
        self._player_locks: Dict[str, list] = {}

    @asynccontextmanager
    async def _locked(self, player_id: str):
        """Serialize one player's commands. The lock is dropped once nobody holds or waits on it."""
        entry = self._player_locks.get(player_id)
        if entry is None:
            entry = self._player_locks[player_id] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._player_locks[player_id]

    # ------------------------------------------------------------------
    # Stories
    # ------------------------------------------------------------------

    async def list_stories(self, player_id: str, username: str = "") -> Dict[str, Any]:
        """Eligible stories plus the player's progress block."""
        player = await self.store.get_or_create_player(player_id, username)
        progress = self.progression.progress_summary(player)
        stories = []
        for story in self.progression.get_eligible_stories(player):
            stories.append({
                "id": story.id,
                "title": story.title,
                "description": story.description,
                "chapter": story.chapter.value,
                "isMainStory": story.is_main_story,
                "status": progress[story.id]["status"],
            })
        return {
            "stories": stories,
            "userProgress": {
                "completedStories": list(player.game_state.completed_stories),
                "paradoxLevel": player.lie_profile.paradox_aptitude,
                "currentChapter": player.game_state.current_chapter.value,
            },
        }

    async def start_story(self, player_id: str, story_id: str, username: str = "") -> StoryNode:
        """Start or resume a story and return the node to show."""
        async with self._locked(player_id):
            player = await self.store.get_or_create_player(player_id, username)
            node = self.progression.start_or_resume_story(player, story_id)
            await self.store.save_player(player)
        return await self._present(node, player, self.progression.get_story(story_id))

    async def get_node(self, player_id: str, story_id: str, node_id: str) -> StoryNode:
        story = self.progression.get_story(story_id)
        node = get_node(story, node_id)
        if node is None:
            raise NodeNotFound(story_id, node_id)
        player = await self.store.get_or_create_player(player_id)
        return await self._present(node, player, story)

    async def current_node(self, player_id: str, story_id: str) -> StoryNode:
        player = await self.store.get_or_create_player(player_id)
        node = self.progression.current_node(player, story_id)
        return await self._present(node, player, self.progression.get_story(story_id))

    async def describe_choices(self, player_id: str, story_id: str, node: StoryNode) -> List[Dict[str, Any]]:
        """Choices at ``node`` with eligibility for this player."""
        player = await self.store.get_or_create_player(player_id)
        return [
            {"index": i, "text": c.text, "eligible": ok}
            for i, c, ok in available_choices(node, player)
        ]

    async def process_choice(
        self, player_id: str, story_id: str, node_id: str, choice_index: int
    ) -> Dict[str, Any]:
        """Apply a choice submitted from ``node_id``.

        ``node_id`` must be the player's stored current node; a stale
        submission raises NodeNotFound and changes nothing.
        """
        async with self._locked(player_id):
            player = await self.store.get_or_create_player(player_id)
            current = self.progression.current_node(player, story_id)
            if current.node_id != node_id:
                logger.warning(
                    f"[{player_id}] stale choice: submitted '{node_id}', current '{current.node_id}'"
                )
                raise NodeNotFound(story_id, node_id)

            outcome = self.progression.apply_choice(player, story_id, choice_index)
            await self._mint(player, outcome.all_unlocked_fragments)
            await self.store.save_player(player)
            await self.store.log_choice(player_id, node_id, choice_index, outcome)
        return outcome.to_response()

    # ------------------------------------------------------------------
    # Fragments
    # ------------------------------------------------------------------

    async def list_fragments(self, player_id: str) -> Dict[str, Any]:
        player = await self.store.get_or_create_player(player_id)
        owned = player.digital_assets.truth_fragments

        def dump(frags):
            return [f.model_dump(mode="json", by_alias=True) for f in frags]

        return {
            "discovered": dump(self.registry.discovered(owned)),
            "undiscovered": dump(self.registry.undiscovered(owned)),
            "combinable": dump(self.registry.combinable_owned(owned)),
        }

    async def combine_fragments(self, player_id: str, fragment_ids: Iterable[str]) -> Dict[str, Any]:
        """Combine owned fragments. Inputs stay in the collection."""
        fragment_ids = list(fragment_ids)
        async with self._locked(player_id):
            player = await self.store.get_or_create_player(player_id)
            result = self.registry.combine(player, fragment_ids)
            if not result.already_owned:
                await self._mint(player, [result.output.id])
            await self.store.save_player(player)
            await self.store.log_combination(player_id, fragment_ids, result.output.id)
        return {
            "fragment": result.output.model_dump(mode="json", by_alias=True),
            "alreadyOwned": result.already_owned,
            "truthFragments": list(player.digital_assets.truth_fragments),
        }

    # ------------------------------------------------------------------
    # Paradox
    # ------------------------------------------------------------------

    async def analyze_statement(self, statement: str, context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not statement or not statement.strip():
            raise ValueError("Statement is required")
        if self.analyst is None:
            raise RuntimeError("No truth analyst configured")
        analysis = await self.analyst.analyze(statement, context)
        return analysis.model_dump(by_alias=True)

    def paradox_levels(self) -> List[Dict[str, Any]]:
        return [dict(level) for level in PARADOX_LEVELS]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _present(self, node: StoryNode, player: Player, story: Story) -> StoryNode:
        """Swap in generated text for dynamic nodes. The stored definition is never changed."""
        if node.type != NodeType.DYNAMIC or not self.enable_narration or self.narrator is None:
            return node
        text = await self.narrator(node, player, story)
        content = node.content.model_copy(update={"text": text})
        return node.model_copy(update={"content": content})

    async def _mint(self, player: Player, fragment_ids: Iterable[str]) -> None:
        """Mint a token for each fragment that has none. Failures are logged, not raised."""
        if self.minter is None:
            return
        tokens = player.digital_assets.fragment_tokens
        for fid in fragment_ids:
            if fid in tokens:
                continue
            fragment = self.registry.require(fid)
            try:
                token = self.minter(player.player_id, fragment.model_dump(mode="json", by_alias=True))
                if inspect.isawaitable(token):
                    token = await token
                tokens[fid] = str(token)
                logger.info(f"[{player.player_id}] minted {fid} as token {token}")
            except Exception as e:
                logger.error(f"Minting {fid} for {player.player_id} failed: {e}", exc_info=True)
