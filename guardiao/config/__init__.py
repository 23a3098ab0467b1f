from guardiao.config.settings import settings

__all__ = ["settings"]
