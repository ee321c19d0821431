"""notife - send notifications to Discord and Telegram from the command line."""

__version__ = "0.1.0"
