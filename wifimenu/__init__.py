"""Menu-driven Wi-Fi manager backed by a background refresh daemon."""

__version__ = "0.1.0"
