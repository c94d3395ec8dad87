from __future__ import annotations

import inspect
from typing import Any, Callable

from .errors import InvalidArgumentError


async def call_model(fn: Callable[..., Any], *args: Any) -> Any:
    """Invoke a model hook, awaiting the result when the hook is async."""
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def optional_capability(model: Any, name: str) -> Callable[..., Any] | None:
    hook = getattr(model, name, None)
    return hook if callable(hook) else None


def require_capabilities(model: Any, *names: str) -> None:
    for name in names:
        if optional_capability(model, name) is None:
            raise InvalidArgumentError(
                f"Invalid argument: model does not implement `{name}()`"
            )
