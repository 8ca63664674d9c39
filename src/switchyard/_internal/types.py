"""Shared type aliases used across switchyard modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Route handler: user-defined function with variable signature
Handler: TypeAlias = Callable[..., Any]

# Lifespan hook: sync or async, no arguments
Hook: TypeAlias = Callable[[], Any]
