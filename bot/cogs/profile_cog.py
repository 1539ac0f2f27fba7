"""
Profile Cog — Lie profile, paradox levels and statement analysis.

Commands:
    !profile              — Your traits, coins, chapter and completed stories
    !levels               — The five paradox levels
    !analyze <statement>  — Ask the Lie Analysis System to score a statement
"""

import logging
import discord
from discord.ext import commands

from engine.errors import StoryEngineError

logger = logging.getLogger("Profile_Cog")


class ProfileCog(commands.Cog, name="Profile"):
    """Player profile commands."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        from bot.client import game_service, state_manager, player_id_for
        self.game = game_service
        self.state_manager = state_manager
        self.player_id_for = player_id_for

    @commands.command(name="profile")
    async def profile_cmd(self, ctx: commands.Context):
        """Show your lie profile and progress."""
        try:
            player = await self.state_manager.get_or_create_player(
                self.player_id_for(ctx.author), ctx.author.name
            )
        except StoryEngineError as e:
            await ctx.send(str(e))
            return
        profile = player.lie_profile
        embed = discord.Embed(title=f"{ctx.author.display_name}'s Lie Profile", color=discord.Color.purple())
        embed.add_field(name="Lie Creativity", value=f"{profile.lie_creativity}/10", inline=True)
        embed.add_field(name="Truth Resistance", value=f"{profile.truth_resistance}/10", inline=True)
        embed.add_field(name="Paradox Aptitude", value=f"{profile.paradox_aptitude}/5", inline=True)
        embed.add_field(name="Chapter", value=player.game_state.current_chapter.value, inline=True)
        embed.add_field(name="Paradox Coins", value=str(player.digital_assets.paradox_coins), inline=True)
        embed.add_field(name="Fragments", value=str(len(player.digital_assets.truth_fragments)), inline=True)
        completed = player.game_state.completed_stories
        embed.add_field(name="Completed", value=", ".join(completed) or "None yet", inline=False)
        await ctx.send(embed=embed)

    @commands.command(name="levels")
    async def levels_cmd(self, ctx: commands.Context):
        """Describe the paradox levels."""
        embed = discord.Embed(title="Paradox Levels", color=discord.Color.dark_purple())
        for level in self.game.paradox_levels():
            embed.add_field(
                name=level["name"],
                value=f"{level['description']}\n_Requires: {level['requirements']}_",
                inline=False,
            )
        await ctx.send(embed=embed)

    @commands.command(name="analyze")
    async def analyze_cmd(self, ctx: commands.Context, *, statement: str):
        """Score a statement for truthfulness and paradox."""
        async with ctx.typing():
            result = await self.game.analyze_statement(statement)
        paradox = "Yes" if result["isParadox"] else "No"
        await ctx.send(
            f"**Truth score:** {result['truthScore']:.2f} (0 = truth, 1 = lie)\n"
            f"**Paradox:** {paradox} | **Complexity:** {result['complexity']:.2f} | "
            f"**Persuasiveness:** {result['persuasiveness']:.2f}\n"
            f"_{result['analysis']}_"
        )


async def setup(bot: commands.Bot):
    await bot.add_cog(ProfileCog(bot))
