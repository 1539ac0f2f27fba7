"""
Paradox — Discord Bot Client

Core bot setup and shared services. All !commands live in Cogs
(bot/cogs/). The story engine itself lives in engine/ and knows nothing
about Discord: the author's Discord id is the player id handed to it.
"""

import os
import asyncio
import logging
import discord
from discord.ext import commands
from dotenv import load_dotenv

from google import genai

from engine.definitions_loader import load_definitions
from engine.game_service import GameService
from engine.state_manager import StateManager
from agents.narrator import NarratorAgent
from agents.truth_analyst import TruthAnalystAgent

logger = logging.getLogger("Paradox_Bot")

# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------
load_dotenv()
DISCORD_TOKEN = os.getenv("DISCORD_BOT_TOKEN")
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
CONTENT_DIR = os.getenv("CONTENT_DIR", "content")
ENABLE_AI_NARRATIVE = os.getenv("ENABLE_AI_NARRATIVE", "false").lower() == "true"
MODEL_ID = os.getenv("GEMINI_MODEL_ID", "gemini-2.0-flash")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
if not os.path.exists("logs"):
    os.makedirs("logs")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.FileHandler("logs/paradox_bot.log", encoding="utf-8"),
        logging.StreamHandler(),
    ],
)

# ---------------------------------------------------------------------------
# Gemini Client
# ---------------------------------------------------------------------------
if not GEMINI_API_KEY:
    logger.warning("GEMINI_API_KEY not found in environment. Narration and analysis are offline.")
    gemini_client = None
else:
    gemini_client = genai.Client(api_key=GEMINI_API_KEY)

# ---------------------------------------------------------------------------
# Definitions, persistence & game service
# ---------------------------------------------------------------------------
definitions = load_definitions(CONTENT_DIR)
state_manager = StateManager()  # async connect happens in on_ready

narrator = NarratorAgent(gemini_client, model_id=MODEL_ID)
truth_analyst = TruthAnalystAgent(gemini_client, model_id=MODEL_ID)

game_service = GameService(
    definitions,
    state_manager,
    narrator=narrator.generate,
    analyst=truth_analyst,
    enable_narration=ENABLE_AI_NARRATIVE,
)

# Story each Discord user is currently playing, for !choose / !node
active_stories: dict = {}

# ---------------------------------------------------------------------------
# Discord Bot Instance
# ---------------------------------------------------------------------------
intents = discord.Intents.default()
intents.message_content = True
bot = commands.Bot(command_prefix="!", intents=intents, help_command=None)

bot.game_service = game_service
bot.state_manager = state_manager
bot.active_stories = active_stories


def player_id_for(author) -> str:
    """The engine's player id for a Discord user."""
    return str(author.id)


@bot.event
async def on_ready():
    logger.info(f"Logged in as {bot.user.name} ({bot.user.id})")
    logger.info(f"Content dir: {CONTENT_DIR}, AI narration: {ENABLE_AI_NARRATIVE}")

    if await state_manager.connect():
        logger.info("StateManager connected.")
    else:
        logger.error("StateManager could not connect to MongoDB. Game commands will fail.")


@bot.event
async def on_command_error(ctx: commands.Context, error: commands.CommandError):
    if isinstance(error, commands.CommandNotFound):
        return
    if isinstance(error, (commands.MissingRequiredArgument, commands.BadArgument)):
        await ctx.send(f"Usage: `!{ctx.command.qualified_name} {ctx.command.signature}`")
        return
    logger.error(f"Command {ctx.command} failed: {error}", exc_info=error)
    await ctx.send("Something went wrong. The Truth AI has been notified.")


# ---------------------------------------------------------------------------
# Cog Loading & Entry Point
# ---------------------------------------------------------------------------
async def load_cogs():
    """Load all Cog extensions."""
    await bot.load_extension("bot.cogs.story_cog")
    await bot.load_extension("bot.cogs.fragment_cog")
    await bot.load_extension("bot.cogs.profile_cog")
    logger.info("All Cogs loaded.")


async def main():
    """Async entry point — load cogs then start the bot."""
    try:
        async with bot:
            await load_cogs()
            await bot.start(DISCORD_TOKEN)
    finally:
        await state_manager.close()


def run():
    """Synchronous entry point for scripts."""
    if not DISCORD_TOKEN:
        print("Error: DISCORD_BOT_TOKEN not found via os.getenv")
        return
    asyncio.run(main())


if __name__ == "__main__":
    run()
