"""
ActiveNode Slack bot.

Answers `active_node` / `!an` mentions with the active deployment colour and
build of every configured region.
"""

__version__ = "0.1.0"
