import discord
from discord.ext import commands

COMMANDS_COG_PATH = 'derby_draw.bot.race_broadcast'

class DrawBotManager(commands.Bot):
    """Custom Bot class hosting the race draw commands."""

    def __init__(self, command_prefix, intents, guild_id=None):
        super().__init__(command_prefix=command_prefix, intents=intents)
        self.guild_id = guild_id # Commands sync instantly to this guild when set

    async def setup_hook(self):
        """Loads the draw cog and syncs slash commands."""
        print("Running setup_hook...")
        try:
            await self.load_extension(COMMANDS_COG_PATH)
            print(f"Successfully loaded cog: {COMMANDS_COG_PATH}")
        except Exception as e:
            print(f"Failed to load cog {COMMANDS_COG_PATH}: {e}")
            raise

        if self.guild_id:
            guild = discord.Object(id=self.guild_id)
            self.tree.copy_global_to(guild=guild)
            target = f"guild {self.guild_id}"
        else:
            guild = None
            target = "all guilds"
        try:
            await self.tree.sync(guild=guild)
            print(f"Synced commands to {target}")
        except discord.HTTPException as e:
            print(f"Failed to sync commands to {target}: {e}")


    async def on_ready(self):
        """Called when the bot is ready."""
        print(f'Logged in as {self.user.name} ({self.user.id})')
        print('------')
