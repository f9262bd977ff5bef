class ActiveNodeError(Exception):
    """Base error for the bot."""


class ConfigError(ActiveNodeError):
    """Raised when settings or the region table are invalid."""


class IdentityLookupError(ActiveNodeError):
    """Raised when the invoking Slack user cannot be resolved."""


class CommandCancelled(ActiveNodeError):
    """Raised when a command is aborted because the bot is shutting down."""
