from . import convert, health, profiles

__all__ = ["convert", "health", "profiles"]
