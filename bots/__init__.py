"""House bot policy driven by equity and pot odds."""

from .policy import BotView, bot_decision, decide

__all__ = ["BotView", "bot_decision", "decide"]
