"""Named calls executed through before/after hook pipes.

This module provides the call pipeline engine:

* :class:`HookPipe` -- an ordered, append-only chain of payload transforms.
* :class:`HookRegistry` -- lazily creates one pipe per ``(stage, name)``.
* :class:`CallRegistry` -- maps call names to their handlers.
* :class:`CallPipeline` -- runs a call as three sequential stages::

      before.<name> hooks  ->  call handler  ->  after.<name> hooks

Every stage receives the payload produced by the previous one. Handlers and
hooks take the payload and return the next payload; they may be plain
functions or coroutine functions. The first stage that raises stops the
invocation: later stages never run and the failure is reported as a
:class:`~peento.exceptions.HookError` or
:class:`~peento.exceptions.OperationError` carrying the payload as it was
at that point.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Iterator, Optional, Union

from peento.exceptions import CallNotFoundError, HookError, OperationError
from peento.namespace import Namespace

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Union[Any, Awaitable[Any]]]
"""A call handler or hook: ``(payload) -> payload``, sync or async."""

STAGES = ("before", "after")


async def _invoke(fn: Handler, payload: Any) -> Any:
    result = fn(payload)
    if inspect.isawaitable(result):
        result = await result
    return result


class HookPipe:
    """Ordered chain of hooks, each transforming the payload for the next."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._hooks: list[Handler] = []

    def add(self, hook: Handler) -> Handler:
        """Append *hook* to the end of the pipe and return it."""
        if not callable(hook):
            raise TypeError(f"Hook for '{self.name}' must be callable, got {type(hook).__name__}")
        self._hooks.append(hook)
        return hook

    def __len__(self) -> int:
        return len(self._hooks)

    def __iter__(self) -> Iterator[Handler]:
        return iter(list(self._hooks))

    def __repr__(self) -> str:
        return f"HookPipe({self.name!r}, hooks={len(self._hooks)})"


class HookRegistry:
    """One lazily created :class:`HookPipe` per ``(stage, call name)``."""

    def __init__(self) -> None:
        self._pipes: dict[tuple[str, str], HookPipe] = {}

    def pipe(self, stage: str, name: str) -> HookPipe:
        """Return the pipe for ``<stage>.<name>``, creating it on first access."""
        if stage not in STAGES:
            raise ValueError(f"Unknown hook stage '{stage}', expected one of {STAGES}")
        key = (stage, name)
        pipe = self._pipes.get(key)
        if pipe is None:
            pipe = self._pipes[key] = HookPipe(f"{stage}.{name}")
        return pipe

    def before(self, name: str) -> HookPipe:
        return self.pipe("before", name)

    def after(self, name: str) -> HookPipe:
        return self.pipe("after", name)

    def names(self) -> list[str]:
        """Return ``<stage>.<name>`` for every pipe created so far."""
        return [pipe.name for pipe in self._pipes.values()]

    def items(self) -> list[tuple[tuple[str, str], HookPipe]]:
        """Return ``((stage, name), pipe)`` pairs in creation order."""
        return list(self._pipes.items())


class CallRegistry:
    """Call name -> handler.

    Registering a name twice replaces the earlier handler; the overwrite is
    logged as a warning.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}

    def register(self, name: str, handler: Handler) -> Handler:
        if not callable(handler):
            raise TypeError(f"Handler for call '{name}' must be callable, got {type(handler).__name__}")
        if name in self._handlers:
            logger.warning("call '%s' is already registered, replacing it", name)
        self._handlers[name] = handler
        return handler

    def get(self, name: str) -> Optional[Handler]:
        return self._handlers.get(name)

    def names(self) -> list[str]:
        return list(self._handlers)

    def items(self) -> list[tuple[str, Handler]]:
        return list(self._handlers.items())

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)


class CallPipeline:
    """Executes named calls as before-hooks -> handler -> after-hooks.

    Args:
        calls: Where call handlers are looked up.
        hooks: Where the before/after pipes are looked up.
        namespace: When given, a callable written at ``call.<name>`` takes
            precedence over *calls*, so handlers set directly in the
            namespace are runnable too.

    Example::

        calls, hooks = CallRegistry(), HookRegistry()
        calls.register("greet", lambda p: "Hello, " + p["name"])
        hooks.before("greet").add(lambda p: {**p, "name": p["name"].upper()})
        await CallPipeline(calls, hooks).run("greet", {"name": "ann"})
        # -> "Hello, ANN"
    """

    def __init__(self, calls: CallRegistry, hooks: HookRegistry, namespace: Optional[Namespace] = None) -> None:
        self.calls = calls
        self.hooks = hooks
        self.namespace = namespace

    def handler(self, name: str) -> Optional[Handler]:
        """Return the handler for call *name*, or ``None`` if there is none."""
        if self.namespace is not None:
            handler = self.namespace.get(f"call.{name}")
            if callable(handler):
                return handler
        return self.calls.get(name)

    async def run(self, name: str, payload: Any = None) -> Any:
        """Run call *name* with *payload* and return the final payload.

        Raises:
            CallNotFoundError: If no handler is registered under *name*; no
                hook runs in that case.
            HookError: If a before or after hook raised.
            OperationError: If the handler raised.
        """
        handler = self.handler(name)
        if handler is None:
            raise CallNotFoundError(name, payload)

        logger.debug("call: before %s", name)
        payload = await self._run_stage("before", name, payload)

        logger.debug("call: %s", name)
        try:
            payload = await _invoke(handler, payload)
        except Exception as exc:
            raise OperationError(name, exc, payload) from exc

        logger.debug("call: after %s", name)
        return await self._run_stage("after", name, payload)

    async def _run_stage(self, stage: str, name: str, payload: Any) -> Any:
        for hook in self.hooks.pipe(stage, name):
            try:
                payload = await _invoke(hook, payload)
            except Exception as exc:
                raise HookError(name, stage, exc, payload) from exc
        return payload
