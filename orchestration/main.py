"""
Paradox — Entry Point

Thin wrapper that delegates to bot/client.py.

Named main.py rather than bot.py so the script's directory, which Python
puts on sys.path[0], does not mask the top-level 'bot' package.

To run: python orchestration/main.py
   or:  python -m bot.client
"""

from bot.client import run

if __name__ == "__main__":
    run()
