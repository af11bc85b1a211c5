from .app import LocalAPIDisabled, create_app

__all__ = ["LocalAPIDisabled", "create_app"]
