"""
Fragment Cog — Inspect and combine truth fragments.

Commands:
    !fragments                  — Your discovered fragments
    !combine <id> <id> [...]    — Combine fragments that match a recipe
"""

import logging
import discord
from discord.ext import commands

from engine.errors import StoryEngineError

logger = logging.getLogger("Fragment_Cog")

RARITY_ICONS = {
    "common": "\U0001f9e9",
    "uncommon": "✨",
    "rare": "\U0001f4ab",
    "legendary": "\U0001f31f",
}


class FragmentCog(commands.Cog, name="Truth Fragments"):
    """Fragment collection commands."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        from bot.client import game_service, player_id_for
        self.game = game_service
        self.player_id_for = player_id_for

    @commands.command(name="fragments")
    async def fragments_cmd(self, ctx: commands.Context):
        """List your discovered truth fragments."""
        try:
            data = await self.game.list_fragments(self.player_id_for(ctx.author))
        except StoryEngineError as e:
            await ctx.send(str(e))
            return
        embed = discord.Embed(title="Truth Fragments", color=discord.Color.dark_gold())
        for f in data["discovered"]:
            icon = RARITY_ICONS.get(f["rarity"], "")
            combine = " (combinable)" if f["combinable"] else ""
            embed.add_field(
                name=f"{icon} {f['name']}{combine}",
                value=f"`{f['id']}` {f['description'][:120]}",
                inline=False,
            )
        if not data["discovered"]:
            embed.description = "You have not discovered any fragments yet."
        embed.set_footer(text=f"{len(data['undiscovered'])} fragment(s) still hidden")
        await ctx.send(embed=embed)

    @commands.command(name="combine")
    async def combine_cmd(self, ctx: commands.Context, *fragment_ids: str):
        """Combine two or more of your fragments."""
        if len(fragment_ids) < 2:
            await ctx.send("Select at least two fragments: `!combine <id> <id>`")
            return
        try:
            result = await self.game.combine_fragments(self.player_id_for(ctx.author), fragment_ids)
        except StoryEngineError as e:
            await ctx.send(str(e))
            return

        fragment = result["fragment"]
        if result["alreadyOwned"]:
            await ctx.send(f"Those fragments form **{fragment['name']}**, which you already hold.")
        else:
            icon = RARITY_ICONS.get(fragment["rarity"], "")
            await ctx.send(f"{icon} New truth fragment: **{fragment['name']}**\n_{fragment['description']}_")


async def setup(bot: commands.Bot):
    await bot.add_cog(FragmentCog(bot))
