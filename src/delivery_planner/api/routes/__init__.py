"""Route group exports."""

from . import deliveries, drivers, health, preview

__all__ = ["deliveries", "drivers", "health", "preview"]
