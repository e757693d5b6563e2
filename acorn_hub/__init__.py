"""acorn-hub: guest wallet, inventory, market and fishing rewards for the hub game."""

__version__ = "0.1.0"
