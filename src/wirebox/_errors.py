from __future__ import annotations

from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from collections.abc import Sequence


def type_name(tp: Any) -> str:
    """Readable name of an abstraction for error messages."""
    if isinstance(tp, type):
        if tp.__module__ == "builtins":
            return tp.__qualname__
        return f"{tp.__module__}.{tp.__qualname__}"
    return repr(tp)


def _labels(qualifiers: Sequence[str]) -> str:
    # the default qualifier is shown under its alias
    return ",".join(q or "type" for q in qualifiers)


class ContainerError(RuntimeError):
    """Base class for every error raised by the container."""


class InvalidResolverShape(ContainerError):
    """The resolver is not callable, or its signature cannot be used."""


class DuplicateBinding(ContainerError):
    def __init__(self, abstraction: Any, qualifier: str) -> None:
        self.abstraction = abstraction
        self.qualifier = qualifier
        super().__init__(f"container: {type_name(abstraction)} binding [{qualifier or 'type'}] already exists")


class InvalidTarget(ContainerError):
    """`resolve` or `fill` was given something it cannot write into."""


class ResolutionError(ContainerError):
    """A dependency could not be resolved from the registry."""


class BindingNotFound(ResolutionError):
    def __init__(self, abstraction: Any) -> None:
        self.abstraction = abstraction
        super().__init__(f"container: no binding found for {type_name(abstraction)}")


class QualifierNotMatched(ResolutionError):
    def __init__(self, abstraction: Any, qualifiers: Sequence[str]) -> None:
        self.abstraction = abstraction
        self.qualifiers = list(qualifiers)
        super().__init__(
            f"container: no binding for {type_name(abstraction)} matches qualifiers [{_labels(self.qualifiers)}]"
        )


class FieldInjectionFailure(ResolutionError):
    def __init__(self, field: str, abstraction: Any, qualifiers: Sequence[str]) -> None:
        self.field = field
        self.abstraction = abstraction
        self.qualifiers = list(qualifiers)
        super().__init__(
            f"container: cannot make {field}({type_name(abstraction)}) field with tags [{_labels(self.qualifiers)}]"
        )


class CyclicDependency(ResolutionError):
    def __init__(self, chain: Sequence[Any]) -> None:
        self.chain = list(chain)
        path = " -> ".join(type_name(tp) for tp in self.chain)
        super().__init__(f"container: circular dependency detected: {path}")
