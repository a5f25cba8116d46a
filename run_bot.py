import os
import sys

import discord
from dotenv import load_dotenv

from derby_draw.bot.manager import DrawBotManager

# Load environment variables from .env file
load_dotenv()
DISCORD_BOT_TOKEN = os.getenv('DISCORD_BOT_TOKEN')
GUILD_ID = os.getenv('DISCORD_GUILD_ID') # Optional test server for instant command sync


def run_bot():
    """Initializes and runs the Discord bot."""
    if not DISCORD_BOT_TOKEN:
        print("FATAL ERROR: DISCORD_BOT_TOKEN not found in .env file.")
        sys.exit(1)
    try:
        guild_id = int(GUILD_ID) if GUILD_ID else None
    except ValueError:
        print(f"FATAL ERROR: DISCORD_GUILD_ID must be numeric, got {GUILD_ID!r}.")
        sys.exit(1)

    intents = discord.Intents.default()
    bot = DrawBotManager(command_prefix="!", intents=intents, guild_id=guild_id)

    try:
        print("Starting Discord bot...")
        bot.run(DISCORD_BOT_TOKEN)
    except discord.LoginFailure as e:
        print(f"Error running bot: {e}")
        sys.exit(1)

if __name__ == "__main__":
    run_bot()
