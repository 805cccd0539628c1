"""inkroll: dice notation engine and roll history for interactive books."""

__version__ = "0.1.0"
