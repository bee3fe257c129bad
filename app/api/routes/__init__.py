from . import articles

__all__ = ["articles"]
