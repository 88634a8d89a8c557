"""State snapshot persistence."""

from .models import ResourceState, StateSnapshot, STATE_FORMAT_VERSION
from .store import StateStore, state_path_for

__all__ = ["ResourceState", "StateSnapshot", "STATE_FORMAT_VERSION", "StateStore", "state_path_for"]
