"""
Tests for engine/game_service.py — the async load/apply/mint/save/log
sequence, run against the shipped content and an in-memory store.
"""

import asyncio

import pytest

from engine.errors import FragmentNotOwned, NodeNotFound, StoryLocked
from engine.game_service import GameService
from models.player import DigitalAssets, GameState, Player
from models.stories import Chapter
from models.outcomes import TruthAnalysis


COVENANT = "the-truth-covenant"


@pytest.fixture
def service(content_definitions, fake_store):
    return GameService(content_definitions, fake_store)


class TestStories:

    def test_list_stories(self, service):
        async def run():
            data = await service.list_stories("u1", "neo")
            assert [s["id"] for s in data["stories"]] == [COVENANT]
            assert data["stories"][0]["status"] == "not_started"
            assert data["userProgress"] == {
                "completedStories": [],
                "paradoxLevel": 1,
                "currentChapter": "awakening",
            }

        asyncio.run(run())

    def test_start_story_saves_progress(self, service, fake_store):
        async def run():
            node = await service.start_story("u1", COVENANT)
            assert node.node_id == "intro-1"
            stored = fake_store.load("u1")
            assert stored.game_state.story_progress[COVENANT].current_node_id == "intro-1"

        asyncio.run(run())

    def test_get_node(self, service):
        async def run():
            node = await service.get_node("u1", COVENANT, "revelation-1")
            assert len(node.choices) == 2
            with pytest.raises(NodeNotFound):
                await service.get_node("u1", COVENANT, "nowhere")

        asyncio.run(run())

    def test_locked_story(self, service):
        async def run():
            with pytest.raises(StoryLocked):
                await service.start_story("u1", "quantum-deception")

        asyncio.run(run())

    def test_describe_choices(self, service, fake_store):
        async def run():
            fake_store.put(Player(
                player_id="u1",
                game_state=GameState(current_chapter=Chapter.TRAINING),
            ))
            await service.start_story("u1", "the-mirror-protocol")
            await service.process_choice("u1", "the-mirror-protocol", "mirror-1", 0)
            node = await service.current_node("u1", "the-mirror-protocol")
            choices = await service.describe_choices("u1", "the-mirror-protocol", node)
            assert [c["eligible"] for c in choices] == [True, False]

        asyncio.run(run())


class TestProcessChoice:

    def test_response_shape(self, service, fake_store):
        async def run():
            await service.start_story("u1", COVENANT)
            for node_id in ["intro-1", "narration-1", "dialogue-1"]:
                await service.process_choice("u1", COVENANT, node_id, 0)
            result = await service.process_choice("u1", COVENANT, "choice-1", 1)

            assert result["nextNodeId"] == "dialogue-2"
            assert result["effects"]["unlockedTruth"] == ["Covenant Origins"]
            assert result["effects"]["traitChanges"] == [
                {"name": "truthResistance", "change": 1, "value": 6}
            ]
            assert result["storyCompleted"] is False
            assert result["userProgress"]["lieProfile"]["truthResistance"] == 6

            stored = fake_store.load("u1")
            assert stored.owns_fragment("origins-truth")
            assert len([e for e in fake_store.events if e["eventType"] == "choice"]) == 4

        asyncio.run(run())

    def test_stale_node_rejected(self, service, fake_store):
        async def run():
            await service.start_story("u1", COVENANT)
            await service.process_choice("u1", COVENANT, "intro-1", 0)
            saves = fake_store.saves
            with pytest.raises(NodeNotFound):
                await service.process_choice("u1", COVENANT, "intro-1", 0)
            assert fake_store.saves == saves
            stored = fake_store.load("u1")
            assert stored.game_state.story_progress[COVENANT].current_node_id == "narration-1"
            assert service._player_locks == {}

        asyncio.run(run())

    def test_concurrent_submissions_apply_once(self, service, fake_store):
        async def run():
            await service.start_story("u1", COVENANT)
            results = await asyncio.gather(
                service.process_choice("u1", COVENANT, "intro-1", 0),
                service.process_choice("u1", COVENANT, "intro-1", 0),
                return_exceptions=True,
            )
            assert sum(isinstance(r, NodeNotFound) for r in results) == 1
            stored = fake_store.load("u1")
            assert stored.game_state.story_progress[COVENANT].choices_made == 1
            assert service._player_locks == {}

        asyncio.run(run())

    def test_completion_mints_fragments(self, content_definitions, fake_store):
        minted = []

        def minter(owner, metadata):
            minted.append((owner, metadata["id"]))
            return f"token-{len(minted)}"

        service = GameService(content_definitions, fake_store, minter=minter)

        async def run():
            await service.start_story("u1", COVENANT)
            path = ["intro-1", "narration-1", "dialogue-1", "choice-1", "narration-2", "revelation-1"]
            result = None
            for node_id in path:
                result = await service.process_choice("u1", COVENANT, node_id, 0)

            assert result["storyCompleted"] is True
            assert result["newlyUnlockedStories"] == ["the-mirror-protocol"]
            assert result["userProgress"]["currentChapter"] == "training"
            assert minted == [("u1", "genesis-truth"), ("u1", "reality-fragment")]
            stored = fake_store.load("u1")
            assert stored.digital_assets.fragment_tokens == {
                "genesis-truth": "token-1",
                "reality-fragment": "token-2",
            }

        asyncio.run(run())

    def test_owned_reward_fragment_not_minted(self, content_definitions, fake_store):
        minted = []

        def minter(owner, metadata):
            minted.append(metadata["id"])
            return "token"

        fake_store.put(Player(player_id="u1", digital_assets=DigitalAssets(truth_fragments=["genesis-truth"])))
        service = GameService(content_definitions, fake_store, minter=minter)

        async def run():
            await service.start_story("u1", COVENANT)
            path = ["intro-1", "narration-1", "dialogue-1", "choice-1", "narration-2", "revelation-1"]
            for node_id in path:
                result = await service.process_choice("u1", COVENANT, node_id, 0)

            assert result["storyCompleted"] is True
            assert minted == ["reality-fragment"]
            stored = fake_store.load("u1")
            assert stored.digital_assets.truth_fragments.count("genesis-truth") == 1
            assert stored.digital_assets.fragment_tokens == {"reality-fragment": "token"}

        asyncio.run(run())

    def test_minting_failure_is_not_fatal(self, content_definitions, fake_store):
        async def failing_minter(owner, metadata):
            raise ConnectionError("chain unavailable")

        service = GameService(content_definitions, fake_store, minter=failing_minter)

        async def run():
            await service.start_story("u1", COVENANT)
            for node_id in ["intro-1", "narration-1", "dialogue-1"]:
                await service.process_choice("u1", COVENANT, node_id, 0)
            result = await service.process_choice("u1", COVENANT, "choice-1", 1)
            assert result["effects"]["unlockedTruth"] == ["Covenant Origins"]
            stored = fake_store.load("u1")
            assert stored.owns_fragment("origins-truth")
            assert stored.digital_assets.fragment_tokens == {}

        asyncio.run(run())


class TestFragments:

    def test_list_fragments(self, service, fake_store):
        async def run():
            fake_store.put(Player(
                player_id="u1",
                digital_assets=DigitalAssets(truth_fragments=["genesis-truth", "origins-truth"]),
            ))
            data = await service.list_fragments("u1")
            assert [f["id"] for f in data["discovered"]] == ["genesis-truth", "origins-truth"]
            assert [f["id"] for f in data["combinable"]] == ["genesis-truth"]
            assert len(data["undiscovered"]) == 5
            assert data["discovered"][0]["storySource"] == "The Truth Covenant"

        asyncio.run(run())

    def test_combine(self, service, fake_store):
        async def run():
            fake_store.put(Player(
                player_id="u1",
                digital_assets=DigitalAssets(truth_fragments=["genesis-truth", "reality-fragment"]),
            ))
            result = await service.combine_fragments("u1", ["reality-fragment", "genesis-truth"])
            assert result["fragment"]["name"] == "Cosmic Revelation"
            assert result["alreadyOwned"] is False
            assert result["truthFragments"] == ["genesis-truth", "reality-fragment", "cosmic-revelation"]
            assert fake_store.load("u1").owns_fragment("cosmic-revelation")
            assert fake_store.events[-1]["output"] == "cosmic-revelation"

        asyncio.run(run())

    def test_combine_unowned(self, service):
        async def run():
            with pytest.raises(FragmentNotOwned):
                await service.combine_fragments("u1", ["genesis-truth", "reality-fragment"])

        asyncio.run(run())


class TestNarration:

    def _training_player(self, fake_store):
        fake_store.put(Player(
            player_id="u1",
            game_state=GameState(current_chapter=Chapter.TRAINING),
        ))

    def test_dynamic_node_narrated(self, content_definitions, fake_store):
        async def narrator(node, player, story):
            return f"Generated for {player.player_id} at {node.node_id}"

        service = GameService(content_definitions, fake_store, narrator=narrator, enable_narration=True)

        async def run():
            self._training_player(fake_store)
            node = await service.start_story("u1", "the-mirror-protocol")
            assert node.content.text == "Generated for u1 at mirror-1"
            story = content_definitions.progression.get_story("the-mirror-protocol")
            assert story.nodes[0].content.text == "Your reflection speaks first."

        asyncio.run(run())

    def test_narration_disabled(self, content_definitions, fake_store):
        async def narrator(node, player, story):
            return "should not be used"

        service = GameService(content_definitions, fake_store, narrator=narrator)

        async def run():
            self._training_player(fake_store)
            node = await service.start_story("u1", "the-mirror-protocol")
            assert node.content.text == "Your reflection speaks first."

        asyncio.run(run())

    def test_static_node_untouched(self, content_definitions, fake_store):
        async def narrator(node, player, story):
            return "should not be used"

        service = GameService(content_definitions, fake_store, narrator=narrator, enable_narration=True)

        async def run():
            node = await service.start_story("u1", COVENANT)
            assert node.content.text.startswith("You receive an anonymous email")

        asyncio.run(run())


class TestParadox:

    def test_levels(self, service):
        levels = service.paradox_levels()
        assert [lvl["id"] for lvl in levels] == ["lie", "contradiction", "paradox", "hyperreal", "metatruth"]

    def test_analyze_requires_statement(self, service):
        async def run():
            with pytest.raises(ValueError):
                await service.analyze_statement("   ")

        asyncio.run(run())

    def test_analyze(self, content_definitions, fake_store):
        class StubAnalyst:
            async def analyze(self, statement, context=None):
                return TruthAnalysis(truth_score=0.9, is_paradox=True, analysis=statement)

        service = GameService(content_definitions, fake_store, analyst=StubAnalyst())

        async def run():
            result = await service.analyze_statement("This sentence is false.")
            assert result["truthScore"] == 0.9
            assert result["isParadox"] is True
            assert result["analysis"] == "This sentence is false."

        asyncio.run(run())
