"""Inversion-of-control container.

This package maps abstractions (classes, protocols or any hashable type token),
optionally qualified by a name, to resolvers: callables whose own parameters
are resolved recursively from the same container by their type annotations.

Exports:
- `Container`: registry of bindings; resolves abstractions, invokes callables
  and fills `Inject`-annotated attributes.
- `Lifecycle`: eager singleton, lazy singleton or transient.
- `Inject`: `Annotated` marker selecting attributes for `Container.fill`.
- `expand_qualifier`: turns ``"primary,type"`` into lookup candidates.
- `must_*`: variants that abort with a diagnostic on container errors.
"""

from ._container import Binding, Container, Lifecycle, ResolveOptions
from ._errors import (
    BindingNotFound,
    ContainerError,
    CyclicDependency,
    DuplicateBinding,
    FieldInjectionFailure,
    InvalidResolverShape,
    InvalidTarget,
    QualifierNotMatched,
    ResolutionError,
)
from ._must import (
    must_call,
    must_fill,
    must_invoke,
    must_register,
    must_resolve,
    must_singleton,
    must_transient,
)
from ._qualifiers import Inject, expand_qualifier


__all__ = [
    "Binding",
    "BindingNotFound",
    "Container",
    "ContainerError",
    "CyclicDependency",
    "DuplicateBinding",
    "FieldInjectionFailure",
    "Inject",
    "InvalidResolverShape",
    "InvalidTarget",
    "Lifecycle",
    "QualifierNotMatched",
    "ResolutionError",
    "ResolveOptions",
    "expand_qualifier",
    "must_call",
    "must_fill",
    "must_invoke",
    "must_register",
    "must_resolve",
    "must_singleton",
    "must_transient",
]
