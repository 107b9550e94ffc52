"""Variants of the container operations that abort the program on container errors.

Meant for application wiring code where a missing binding is a programming
error: the diagnostic is logged and `SystemExit` is raised instead of
returning control to the caller. Exceptions raised by the resolvers
themselves propagate unchanged.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar

from ._container import Lifecycle
from ._errors import ContainerError
from ._qualifiers import DEFAULT


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable

    from ._container import Container

    T = TypeVar("T")


def _must(operation: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    try:
        return operation(*args, **kwargs)
    except ContainerError as exc:
        logger.critical("%s", exc)
        raise SystemExit(str(exc)) from exc


def must_register(
    container: Container,
    resolver: Callable[..., object],
    lifecycle: Lifecycle | str = Lifecycle.LAZY_SINGLETON,
    qualifier: str = DEFAULT,
    *,
    provides: Any = None,
) -> None:
    _must(container.register, resolver, lifecycle, qualifier, provides=provides)


def must_singleton(
    container: Container,
    resolver: Callable[..., object],
    *,
    qualifier: str = DEFAULT,
    lazy: bool = True,
    provides: Any = None,
) -> None:
    _must(container.singleton, resolver, qualifier=qualifier, lazy=lazy, provides=provides)


def must_transient(
    container: Container,
    resolver: Callable[..., object],
    *,
    qualifier: str = DEFAULT,
    provides: Any = None,
) -> None:
    _must(container.transient, resolver, qualifier=qualifier, provides=provides)


def must_resolve(container: Container, abstraction: Any, *, qualifier: str = DEFAULT) -> Any:
    return _must(container.resolve, abstraction, qualifier=qualifier)


def must_invoke(container: Container, function: Callable[..., T], *, qualifier: str = DEFAULT) -> T:
    return _must(container.invoke, function, qualifier=qualifier)


def must_call(container: Container, receiver: Callable[..., object], *, qualifier: str = DEFAULT) -> None:
    _must(container.call, receiver, qualifier=qualifier)


def must_fill(container: Container, target: object) -> None:
    _must(container.fill, target)
