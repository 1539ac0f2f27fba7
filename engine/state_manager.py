"""
StateManager — Async MongoDB service for player documents.

Every write passes through Pydantic validation. Raw dicts are never
written directly. Player documents use the persisted camelCase layout:
``lieProfile``, ``gameState.currentChapter``, ``gameState.completedStories``,
``digitalAssets.paradoxCoins``, ``digitalAssets.truthFragments``.

Story, fragment and recipe definitions are NOT stored here; they are
loaded once from the content directory (see definitions_loader).

Requires:
  - MONGODB_URI in .env (default: mongodb://localhost:27017)
  - Database name: paradox (configurable)
"""

import os
import logging
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone

from pydantic import ValidationError

logger = logging.getLogger("StateManager")

# ---------------------------------------------------------------------------
# Lazy motor import. The engine and tests load even when
# MongoDB is not installed or not running. StateManager methods will
# raise clear errors if called without a connection.
# ---------------------------------------------------------------------------
try:
    from motor.motor_asyncio import AsyncIOMotorClient
    HAS_MOTOR = True
except ImportError:
    HAS_MOTOR = False
    AsyncIOMotorClient = None  # type: ignore[assignment,misc]

from engine.errors import PlayerDocumentInvalid
from models.outcomes import ChoiceOutcome
from models.player import Player


class StateManager:
    """Async MongoDB-backed player store with Pydantic validation on every write.

    Collections:
        players — One document per player (lie profile, game state, assets)
        events  — Append-only log of applied choices and combinations
    """

    def __init__(
        self,
        uri: Optional[str] = None,
        db_name: Optional[str] = None,
    ):
        self.uri = uri or os.getenv("MONGODB_URI", "mongodb://localhost:27017")
        self.db_name = db_name or os.getenv("PARADOX_DB_NAME", "paradox")
        self._client: Any = None
        self._db: Any = None

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    async def connect(self) -> bool:
        """Connect to MongoDB. Returns True on success."""
        if not HAS_MOTOR:
            logger.error("motor is not installed. Run: pip install motor")
            return False
        try:
            self._client = AsyncIOMotorClient(self.uri)
            await self._client.admin.command("ping")
            self._db = self._client[self.db_name]
            await self._db.players.create_index("playerId", unique=True)
            logger.info(f"StateManager connected to MongoDB: {self.db_name}")
            return True
        except Exception as e:
            logger.error(f"MongoDB connection failed: {e}")
            self._client = None
            self._db = None
            return False

    def attach(self, db: Any) -> None:
        """Use an already-open database handle (shared client or test double)."""
        self._db = db

    async def close(self):
        """Close the MongoDB connection."""
        if self._client:
            self._client.close()
        self._client = None
        self._db = None

    @property
    def is_connected(self) -> bool:
        return self._db is not None

    def _require_connection(self):
        if not self.is_connected:
            raise RuntimeError("StateManager is not connected to MongoDB.")

    # ------------------------------------------------------------------
    # Players
    # ------------------------------------------------------------------

    async def get_player(self, player_id: str) -> Optional[Player]:
        """Load and validate a player document. None only if no document exists.

        Raises:
            PlayerDocumentInvalid: the stored document fails validation.
                It is left untouched for inspection.
        """
        self._require_connection()
        doc = await self._db.players.find_one({"playerId": player_id})
        if doc is None:
            return None
        doc.pop("_id", None)
        try:
            return Player.model_validate(doc)
        except ValidationError as e:
            logger.error(f"Stored player {player_id} failed validation: {e}")
            raise PlayerDocumentInvalid(player_id) from e

    async def get_or_create_player(self, player_id: str, username: str = "") -> Player:
        """Load a player, creating a fresh profile only when no document exists.

        An invalid stored document raises PlayerDocumentInvalid and is never overwritten.
        """
        player = await self.get_player(player_id)
        if player is not None:
            return player
        player = Player(player_id=player_id, username=username)
        await self.save_player(player)
        logger.info(f"Created player {player_id} ({username or 'anonymous'})")
        return player

    async def save_player(self, player: Player) -> bool:
        """Validate and upsert a player document. Returns True on success."""
        self._require_connection()
        try:
            model = Player.model_validate(player.model_dump())
        except ValidationError as e:
            logger.error(f"Player validation failed: {e}")
            return False
        doc = model.model_dump(mode="json", by_alias=True)
        doc["updatedAt"] = datetime.now(timezone.utc).isoformat()
        await self._db.players.update_one(
            {"playerId": doc["playerId"]},
            {"$set": doc},
            upsert=True,
        )
        return True

    async def list_players(self) -> List[Dict[str, Any]]:
        self._require_connection()
        cursor = self._db.players.find()
        results = []
        async for doc in cursor:
            doc.pop("_id", None)
            results.append(doc)
        return results

    # ------------------------------------------------------------------
    # Events (append-only log)
    # ------------------------------------------------------------------

    async def log_choice(self, player_id: str, node_id: str, choice_index: int, outcome: ChoiceOutcome) -> bool:
        self._require_connection()
        doc = {
            "playerId": player_id,
            "eventType": "choice",
            "storyId": outcome.story_id,
            "nodeId": node_id,
            "choiceIndex": choice_index,
            "outcome": outcome.to_response(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        await self._db.events.insert_one(doc)
        return True

    async def log_combination(self, player_id: str, inputs: List[str], output: str) -> bool:
        self._require_connection()
        await self._db.events.insert_one({
            "playerId": player_id,
            "eventType": "combination",
            "inputs": sorted(inputs),
            "output": output,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })
        return True

    async def get_player_events(self, player_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        self._require_connection()
        cursor = self._db.events.find({"playerId": player_id}).sort("timestamp", -1).limit(limit)
        results = []
        async for doc in cursor:
            doc.pop("_id", None)
            results.append(doc)
        return results
