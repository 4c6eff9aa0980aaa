"""Bounded, ordered hook lists run around each exchange."""

from __future__ import annotations

from typing import Callable, Generic, Iterator, TypeVar

import httpx
import structlog

from .exceptions import HookCapacityError, HookIndexError

logger = structlog.get_logger()

T = TypeVar("T")

DEFAULT_HOOK_CAPACITY = 8

BeforeRequestHook = Callable[[httpx.Request], None]
AfterResponseHook = Callable[[httpx.Response], None]


class HookPipeline(Generic[T]):
    """Ordered callbacks with a fixed capacity.

    A hook signals failure by raising. ``run`` stops at the first failing hook
    and returns its exception instead of raising it; the caller decides what
    to do with it.
    """

    def __init__(self, name: str, capacity: int = DEFAULT_HOOK_CAPACITY) -> None:
        self.name = name
        self.capacity = capacity
        self._hooks: list[Callable[[T], None]] = []

    def __len__(self) -> int:
        return len(self._hooks)

    def __iter__(self) -> Iterator[Callable[[T], None]]:
        return iter(list(self._hooks))

    def register(self, hook: Callable[[T], None]) -> None:
        if len(self._hooks) >= self.capacity:
            raise HookCapacityError(f"{self.name} hooks are limited to {self.capacity}")
        self._hooks.append(hook)

    def unregister(self, index: int) -> None:
        if index < 0 or index >= len(self._hooks):
            raise HookIndexError(f"{self.name} hook index {index} out of range ({len(self._hooks)} registered)")
        del self._hooks[index]

    def reset(self) -> None:
        self._hooks = []

    def run(self, target: T) -> Exception | None:
        for position, hook in enumerate(self._hooks):
            try:
                hook(target)
            except Exception as exc:
                logger.warning(
                    "hook_failed",
                    component="hooks",
                    pipeline=self.name,
                    position=position,
                    error_class=type(exc).__name__,
                    error=str(exc),
                )
                return exc
        return None
