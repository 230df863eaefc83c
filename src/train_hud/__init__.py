"""Train Sim World driver HUD, route recorder and route playback."""

__version__ = "0.1.0"
