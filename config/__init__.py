from config.settings import DEFAULT_MESSAGES, Settings

__all__ = ["DEFAULT_MESSAGES", "Settings"]
