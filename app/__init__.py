"""
Anima Forge Chronos API
Daily reset and streak progression engine for gamified habit paths
"""

__version__ = "1.0.0"
__author__ = "Anima Forge Team"
__description__ = "Chronos daily reset, path streaks, milestones and prestige progression"

# Package metadata
__all__ = [
    "__version__",
    "__author__",
    "__description__"
]
