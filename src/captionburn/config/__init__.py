from captionburn.config.settings import Settings

__all__ = ["Settings"]
