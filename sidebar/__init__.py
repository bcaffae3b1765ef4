"""Quick-launch sidebar backend: site registry, favicon cache and idle hibernation."""

__version__ = "0.1.0"
