"""
Playback control.

Contains:
- Automatic end-of-region transitions
- Setlist-aware navigation
- Project identity tracking
"""

from .transition import (
    EngineState,
    RegionEndAction,
    TransitionEngine,
    TransitionTiming,
)

from .navigation import NavigationFacade

from .project import ProjectTracker

__all__ = [
    # Transitions
    "EngineState",
    "RegionEndAction",
    "TransitionEngine",
    "TransitionTiming",
    # Navigation
    "NavigationFacade",
    # Project
    "ProjectTracker",
]
