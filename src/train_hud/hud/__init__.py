"""HUD session state shared by the web server."""

from train_hud.hud.session import HudSession

__all__ = ["HudSession"]
