"""Discord surface of the Select Start leaderboard bot.

The runtime in :mod:`bots.runtime` wires the feed, the slash commands and the
periodic refresher together; the other modules stay usable on their own.
"""

__all__ = [
    "alerts",
    "channels",
    "commands",
    "config",
    "feed",
    "presentation",
    "runtime",
    "scheduler",
    "shadow",
    "standings",
]
