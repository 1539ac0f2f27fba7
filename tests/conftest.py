"""
Shared pytest fixtures for the Paradox story engine test suite.

Small hand-built stories and fragments for engine tests, the real
content/ directory for end-to-end checks, an in-memory player store
and a canned-response Gemini client.
"""

from pathlib import Path

import pytest

from engine.definitions_loader import load_definitions
from engine.fragment_registry import FragmentRegistry
from engine.progression import ProgressionCoordinator
from models.fragments import CombinationRecipe, FragmentDefinition
from models.player import Player
from models.stories import Story

CONTENT_DIR = Path(__file__).resolve().parent.parent / "content"


# ---------------------------------------------------------------------------
# Gemini Mock Helpers (reusable classes)
# ---------------------------------------------------------------------------

class MockGeminiResponse:
    """Simulates a Gemini response with .text property."""

    def __init__(self, text):
        self.text = text


class MockGeminiClient:
    """Mock Gemini client that returns canned text responses.

    Usage:
        client = MockGeminiClient(["response1", "response2"])
        resp = await client.aio.models.generate_content(model=..., contents=...)
        assert resp.text == "response1"

    A response that is an Exception instance is raised instead of returned.
    """

    def __init__(self, responses=None):
        self._responses = responses or []
        self._call_count = 0
        self.calls = []

    @property
    def aio(self):
        return self

    @property
    def models(self):
        return self

    async def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self._call_count < len(self._responses):
            resp = self._responses[self._call_count]
        else:
            resp = '{"error": "no more canned responses"}'
        self._call_count += 1
        if isinstance(resp, Exception):
            raise resp
        if isinstance(resp, str) or resp is None:
            return MockGeminiResponse(resp)
        return resp


# ---------------------------------------------------------------------------
# In-memory player store
# ---------------------------------------------------------------------------

class FakeStore:
    """Stands in for StateManager. Players round-trip through their JSON dump."""

    def __init__(self):
        self.docs = {}
        self.events = []
        self.saves = 0

    def put(self, player: Player):
        self.docs[player.player_id] = player.model_dump(mode="json", by_alias=True)

    def load(self, player_id: str) -> Player:
        return Player.model_validate(self.docs[player_id])

    async def get_or_create_player(self, player_id, username=""):
        if player_id not in self.docs:
            self.put(Player(player_id=player_id, username=username))
        return self.load(player_id)

    async def save_player(self, player):
        self.saves += 1
        self.put(player)
        return True

    async def log_choice(self, player_id, node_id, choice_index, outcome):
        self.events.append({
            "eventType": "choice",
            "playerId": player_id,
            "storyId": outcome.story_id,
            "nodeId": node_id,
            "choiceIndex": choice_index,
        })
        return True

    async def log_combination(self, player_id, inputs, output):
        self.events.append({
            "eventType": "combination",
            "playerId": player_id,
            "inputs": sorted(inputs),
            "output": output,
        })
        return True


# ---------------------------------------------------------------------------
# Hand-built definitions
# ---------------------------------------------------------------------------

FRAGMENTS = [
    {"id": "alpha", "name": "Alpha Truth", "rarity": "common", "combinable": True},
    {"id": "beta", "name": "Beta Truth", "rarity": "uncommon", "combinable": True},
    {"id": "gamma", "name": "Gamma Truth", "rarity": "rare"},
    {"id": "omega", "name": "Omega Truth", "rarity": "legendary"},
]

RECIPES = [
    {"inputs": ["alpha", "beta"], "output": "omega"},
]

STORIES = [
    {
        "id": "lab",
        "title": "The Lab",
        "chapter": "awakening",
        "isMainStory": False,
        "startingNodeId": "start",
        "rewards": {"paradoxCoins": 100, "truthFragments": ["gamma"], "unlockStories": ["sequel"]},
        "nodes": [
            {
                "nodeId": "start",
                "type": "choice",
                "content": {"text": "A door and a key."},
                "choices": [
                    {
                        "text": "Take the key",
                        "nextNodeId": "middle",
                        "effects": {
                            "addItems": ["key"],
                            "paradoxCoins": 5,
                            "modifyTraits": [{"name": "lieCreativity", "change": 100}],
                            "unlockTruth": ["alpha"],
                        },
                    },
                    {
                        "text": "Use the key",
                        "nextNodeId": "middle",
                        "requires": {"items": ["key"]},
                    },
                    {
                        "text": "Break something",
                        "nextNodeId": "middle",
                        "effects": {
                            "addItems": ["crowbar"],
                            "paradoxCoins": 7,
                            "modifyTraits": [{"name": "charisma", "change": 1}],
                        },
                    },
                    {
                        "text": "Leave and pay the toll",
                        "nextNodeId": "exit",
                        "effects": {"paradoxCoins": -50},
                    },
                ],
            },
            {
                "nodeId": "middle",
                "type": "narrative",
                "choices": [
                    {
                        "text": "Open the door",
                        "nextNodeId": "done",
                        "effects": {"removeItems": ["key", "lamp"], "unlockTruth": ["beta"]},
                    },
                    {"text": "Go back", "nextNodeId": "start"},
                    {
                        "text": "Bluff the guard",
                        "nextNodeId": "done",
                        "requires": {"traits": [{"name": "lieCreativity", "level": 8}]},
                    },
                    {
                        "text": "Show the omega truth",
                        "nextNodeId": "done",
                        "requires": {"truth": ["omega"]},
                    },
                ],
            },
        ],
    },
    {
        "id": "main-a",
        "title": "Awakening Main",
        "chapter": "awakening",
        "isMainStory": True,
        "startingNodeId": "a1",
        "rewards": {"paradoxCoins": 10},
        "nodes": [
            {"nodeId": "a1", "choices": [{"text": "Finish", "nextNodeId": "end"}]},
        ],
    },
    {
        "id": "main-b",
        "title": "Training Main",
        "chapter": "training",
        "isMainStory": True,
        "startingNodeId": "b1",
        "nodes": [
            {"nodeId": "b1", "choices": [{"text": "Finish", "nextNodeId": "end"}]},
        ],
    },
    {
        "id": "main-c",
        "title": "Subversion Main",
        "chapter": "subversion",
        "isMainStory": True,
        "startingNodeId": "c1",
        "nodes": [
            {"nodeId": "c1", "choices": [{"text": "Finish", "nextNodeId": "end"}]},
        ],
    },
    {
        "id": "deep",
        "title": "Deep Side Story",
        "chapter": "awakening",
        "startingNodeId": "d1",
        "requirements": {"paradoxLevel": 3},
        "nodes": [
            {"nodeId": "d1", "choices": [{"text": "Finish", "nextNodeId": "end"}]},
        ],
    },
    {
        "id": "sequel",
        "title": "Sequel",
        "chapter": "awakening",
        "startingNodeId": "s1",
        "requirements": {"paradoxLevel": 5},
        "nodes": [
            {"nodeId": "s1", "choices": [{"text": "Finish", "nextNodeId": "end"}]},
        ],
    },
    {
        "id": "after-lab",
        "title": "After the Lab",
        "chapter": "awakening",
        "startingNodeId": "x1",
        "requirements": {"completedStories": ["lab"], "truthFragments": ["gamma"]},
        "nodes": [
            {"nodeId": "x1", "choices": [{"text": "Finish", "nextNodeId": "end"}]},
        ],
    },
    {
        "id": "loop",
        "title": "Loop",
        "chapter": "awakening",
        "startingNodeId": "spin",
        "nodes": [
            {
                "nodeId": "spin",
                "choices": [
                    {"text": "Spin again", "nextNodeId": "spin", "effects": {"paradoxCoins": 1}},
                ],
            },
        ],
    },
]


def make_registry() -> FragmentRegistry:
    return FragmentRegistry(
        [FragmentDefinition.model_validate(f) for f in FRAGMENTS],
        [CombinationRecipe.model_validate(r) for r in RECIPES],
    )


def make_stories():
    return [Story.model_validate(s) for s in STORIES]


# ---------------------------------------------------------------------------
# Pytest fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def registry():
    return make_registry()


@pytest.fixture
def stories():
    return {s.id: s for s in make_stories()}


@pytest.fixture
def progression(registry):
    return ProgressionCoordinator(make_stories(), registry)


@pytest.fixture
def player():
    """A fresh player: all traits at defaults, awakening chapter, no assets."""
    return Player(player_id="u1", username="tester")


@pytest.fixture
def content_definitions():
    """Definitions loaded from the shipped content/ directory."""
    return load_definitions(CONTENT_DIR)


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def mock_gemini():
    """Factory for MockGeminiClient: ``mock_gemini(["resp1", ...])``."""
    return MockGeminiClient
