"""Plan execution."""

from .models import ApplyResult
from .reconciler import Executor

__all__ = ["ApplyResult", "Executor"]
