"""
Story Cog — Play stories from Discord.

Commands:
    !stories            — List the stories you can play
    !play <story_id>    — Start or resume a story
    !node               — Show where you are in your active story
    !choose <number>    — Pick a choice at the current node (1-based)
"""

import logging
import discord
from discord.ext import commands

from engine.errors import StoryEngineError
from models.stories import StoryNode

logger = logging.getLogger("Story_Cog")

MOOD_COLORS = {
    "happy": discord.Color.gold(),
    "sad": discord.Color.dark_blue(),
    "angry": discord.Color.red(),
    "surprised": discord.Color.orange(),
    "suspicious": discord.Color.dark_purple(),
}


class StoryCog(commands.Cog, name="Stories"):
    """Story traversal commands."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        from bot.client import game_service, active_stories, player_id_for
        self.game = game_service
        self.active = active_stories
        self.player_id_for = player_id_for

    async def _node_embed(self, player_id: str, story_id: str, node: StoryNode) -> discord.Embed:
        title = self.game.progression.get_story(story_id).title
        embed = discord.Embed(
            title=title,
            description=node.content.text or "_..._",
            color=MOOD_COLORS.get(node.metadata.mood or "", discord.Color.blurple()),
        )
        if node.metadata.location:
            embed.set_author(name=node.metadata.location)
        if node.metadata.characters:
            embed.add_field(name="Present", value=", ".join(node.metadata.characters), inline=False)

        choices = await self.game.describe_choices(player_id, story_id, node)
        if choices:
            lines = []
            for c in choices:
                lock = "" if c["eligible"] else " \U0001f512"
                lines.append(f"**{c['index'] + 1}.** {c['text']}{lock}")
            embed.add_field(name="Choices", value="\n".join(lines), inline=False)
        embed.set_footer(text=f"{story_id} / {node.node_id}")
        return embed

    @commands.command(name="stories")
    async def stories_cmd(self, ctx: commands.Context):
        """List the stories available to you."""
        player_id = self.player_id_for(ctx.author)
        try:
            data = await self.game.list_stories(player_id, ctx.author.name)
        except StoryEngineError as e:
            await ctx.send(str(e))
            return
        progress = data["userProgress"]

        embed = discord.Embed(
            title="Available Stories",
            description=(
                f"Chapter: **{progress['currentChapter']}** | "
                f"Paradox level: **{progress['paradoxLevel']}**"
            ),
            color=discord.Color.purple(),
        )
        for s in data["stories"]:
            tag = "Main" if s["isMainStory"] else "Side"
            embed.add_field(
                name=f"{s['title']} [{tag}] — {s['status'].replace('_', ' ')}",
                value=f"`{s['id']}` {s['description'][:150]}",
                inline=False,
            )
        if not data["stories"]:
            embed.add_field(name="None", value="No stories are open to you yet.")
        await ctx.send(embed=embed)

    @commands.command(name="play")
    async def play_cmd(self, ctx: commands.Context, story_id: str):
        """Start or resume a story."""
        player_id = self.player_id_for(ctx.author)
        try:
            async with ctx.typing():
                node = await self.game.start_story(player_id, story_id, ctx.author.name)
        except StoryEngineError as e:
            await ctx.send(str(e))
            return
        self.active[player_id] = story_id
        await ctx.send(embed=await self._node_embed(player_id, story_id, node))

    @commands.command(name="node")
    async def node_cmd(self, ctx: commands.Context):
        """Show your current node."""
        player_id = self.player_id_for(ctx.author)
        story_id = self.active.get(player_id)
        if not story_id:
            await ctx.send("You are not playing a story. Use `!play <story_id>`.")
            return
        try:
            node = await self.game.current_node(player_id, story_id)
        except StoryEngineError as e:
            await ctx.send(str(e))
            return
        await ctx.send(embed=await self._node_embed(player_id, story_id, node))

    @commands.command(name="choose")
    async def choose_cmd(self, ctx: commands.Context, number: int):
        """Pick a choice (1-based) at your current node."""
        player_id = self.player_id_for(ctx.author)
        story_id = self.active.get(player_id)
        if not story_id:
            await ctx.send("You are not playing a story. Use `!play <story_id>`.")
            return

        try:
            current = await self.game.current_node(player_id, story_id)
            result = await self.game.process_choice(player_id, story_id, current.node_id, number - 1)
        except StoryEngineError as e:
            await ctx.send(str(e))
            return

        effects = result["effects"]
        notes = []
        if effects["paradoxCoins"]:
            notes.append(f"{effects['paradoxCoins']:+d} Paradox Coins")
        for t in effects["traitChanges"]:
            notes.append(f"{t['name']} {t['change']:+d} (now {t['value']})")
        for name in effects["unlockedTruth"]:
            notes.append(f"Truth fragment discovered: **{name}**")
        if notes:
            await ctx.send("\n".join(notes))

        if result["storyCompleted"]:
            self.active.pop(player_id, None)
            progress = result["userProgress"]
            msg = f"**Story complete.** Chapter: {progress['currentChapter']}, coins: {progress['paradoxCoins']}."
            if result["newlyUnlockedStories"]:
                msg += f"\nNew stories: {', '.join(result['newlyUnlockedStories'])}"
            await ctx.send(msg)
            return

        node = await self.game.current_node(player_id, story_id)
        await ctx.send(embed=await self._node_embed(player_id, story_id, node))


async def setup(bot: commands.Bot):
    await bot.add_cog(StoryCog(bot))
