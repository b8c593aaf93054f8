"""docia - markdown book → static documentation site."""

__version__ = "0.3.0"
