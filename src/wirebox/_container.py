from __future__ import annotations

import functools
import inspect
import logging
import threading
import types
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Annotated,
    Any,
    TypeVar,
    Union,
    get_args,
    get_origin,
    get_type_hints,
    overload,
)

from ._errors import (
    BindingNotFound,
    CyclicDependency,
    DuplicateBinding,
    FieldInjectionFailure,
    InvalidResolverShape,
    InvalidTarget,
    QualifierNotMatched,
    type_name,
)
from ._qualifiers import DEFAULT, Inject, expand_qualifier


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence

    T = TypeVar("T")

_EMPTY = inspect.Parameter.empty


class Lifecycle(Enum):
    SINGLETON = "singleton"  # built during registration
    LAZY_SINGLETON = "lazy_singleton"  # built on first use
    TRANSIENT = "transient"


@dataclass(frozen=True)
class ResolveOptions:
    """Per-call resolution settings.

    `qualifier` is expanded with `expand_qualifier` for every dependency of the
    call, nested ones included. `lazy` picks between an eager and a lazy
    singleton when registering through `Container.singleton`.
    """

    qualifier: str = DEFAULT
    lazy: bool = True

    def candidates(self) -> list[str]:
        return expand_qualifier(self.qualifier)


@dataclass(frozen=True)
class _Parameter:
    name: str
    abstraction: Any
    kind: Any
    default: Any

    @property
    def has_default(self) -> bool:
        return self.default is not _EMPTY


@dataclass(frozen=True)
class _Factory:
    """Introspected view of a resolver: what it needs and what it returns."""

    func: Callable[..., object]
    parameters: tuple[_Parameter, ...]
    provides: Any  # None when the callable declares no output
    returns_error: bool

    @classmethod
    def of(cls, func: Callable[..., object]) -> _Factory:
        if not callable(func):
            msg = f"container: the resolver must be callable, got {func!r}"
            raise InvalidResolverShape(msg)

        hints = _get_type_hints(func)
        # keywords bound by a partial stay with the partial
        bound = func.keywords if isinstance(func, functools.partial) else {}
        parameters = []
        for name, p in _signature(func).parameters.items():
            if p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD) or name in bound:
                continue
            ann = hints.get(name, _EMPTY)
            if ann is _EMPTY and p.default is _EMPTY:
                msg = f"container: parameter '{name}' of {_describe(func)} has no type annotation"
                raise InvalidResolverShape(msg)
            parameters.append(_Parameter(name, ann, p.kind, p.default))

        if inspect.isclass(func):
            provides, returns_error = func, False
        else:
            provides, returns_error = _output_shape(func, hints.get("return", _EMPTY))

        return cls(func, tuple(parameters), provides, returns_error)

    def unpack(self, result: object) -> object:
        if not self.returns_error:
            return result

        if not isinstance(result, tuple) or len(result) != 2:
            msg = f"container: {_describe(self.func)} must return a (value, error) pair, got {result!r}"
            raise InvalidResolverShape(msg)

        value, err = result
        if err is None:
            return value
        if isinstance(err, BaseException):
            raise err
        msg = f"container: {_describe(self.func)} returned a non-exception error value {err!r}"
        raise InvalidResolverShape(msg)


@dataclass(frozen=True)
class _Resolution:
    """Options of the current call plus the bindings being made, outermost first."""

    options: ResolveOptions = field(default_factory=ResolveOptions)
    chain: tuple[Binding, ...] = ()

    def enter(self, binding: Binding) -> _Resolution:
        if binding in self.chain:
            cycle = self.chain[self.chain.index(binding) :]
            raise CyclicDependency([b.abstraction for b in (*cycle, binding)])
        return _Resolution(self.options, (*self.chain, binding))


@dataclass(eq=False)
class Binding:
    abstraction: Any
    qualifier: str
    lifecycle: Lifecycle
    factory: _Factory = field(repr=False)
    cached_instance: object | None = field(default=None, repr=False)
    cached: bool = False  # a resolver may legitimately produce None

    @property
    def resolver(self) -> Callable[..., object]:
        return self.factory.func

    def make(self, container: Container, ctx: _Resolution | None = None) -> object:
        """Return the cached instance, or build one with the resolver.

        Singletons keep the first successful result; a failed build leaves
        the binding empty so the next call retries.
        """
        with container._lock:  # noqa: SLF001
            if self.cached:
                return self.cached_instance

            ctx = (ctx or _Resolution()).enter(self)
            instance = container._invoke(self.factory, ctx)  # noqa: SLF001

            if self.lifecycle is not Lifecycle.TRANSIENT:
                self.cached_instance = instance
                self.cached = True
                logger.debug("Cached %s [%s]", type_name(self.abstraction), self.qualifier or "type")

            return instance


class Container:
    """Inversion-of-control container.

    - bind abstractions to resolvers, optionally under a qualifier
    - lifecycles: eager singleton / lazy singleton / transient
    - resolve, invoke callables and fill annotated attributes with
      recursively resolved dependencies.

    Every operation holds one re-entrant lock, so a container may be shared
    between threads.
    """

    def __init__(self) -> None:
        self._bindings: dict[Any, dict[str, Binding]] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return sum(len(slot) for slot in self._bindings.values())

    def __bool__(self) -> bool:
        # an empty container is still a container
        return True

    def register(
        self,
        resolver: Callable[..., object],
        lifecycle: Lifecycle | str = Lifecycle.LAZY_SINGLETON,
        qualifier: str = DEFAULT,
        *,
        provides: Any = None,
    ) -> None:
        """Bind the resolver's output type to the resolver.

        The abstraction is the resolver's return annotation (the class itself
        for a class resolver) unless `provides` names it explicitly. A return
        annotation of ``tuple[T, E | None]``, with `E` an exception type,
        binds `T`; the resolver reports failure through the second item.

        Example:
          container.register(make_db, Lifecycle.SINGLETON)
          container.register(lambda: FileCache(), qualifier="disk", provides=Cache)

        """
        try:
            lifecycle = Lifecycle(lifecycle)
        except ValueError as e:
            msg = f"container: unknown lifecycle {lifecycle!r}"
            raise InvalidResolverShape(msg) from e
        factory = _Factory.of(resolver)

        abstraction = provides if provides is not None else factory.provides
        if abstraction is None:
            msg = f"container: {_describe(resolver)} must declare the type it returns (or pass provides=)"
            raise InvalidResolverShape(msg)
        try:
            hash(abstraction)
        except TypeError as e:
            msg = f"container: {abstraction!r} cannot be used as an abstraction"
            raise InvalidResolverShape(msg) from e

        with self._lock:
            if qualifier in self._bindings.get(abstraction, {}):
                raise DuplicateBinding(abstraction, qualifier)

            binding = Binding(abstraction, qualifier, lifecycle, factory)
            if lifecycle is Lifecycle.SINGLETON:
                # nothing is stored when the eager build fails
                binding.make(self, _Resolution(ResolveOptions(qualifier=qualifier)))

            self._bindings.setdefault(abstraction, {})[qualifier] = binding

        logger.debug("Registered %s [%s] as %s", type_name(abstraction), qualifier or "type", lifecycle.value)

    def singleton(
        self,
        resolver: Callable[..., object],
        *,
        qualifier: str = DEFAULT,
        lazy: bool = True,
        provides: Any = None,
    ) -> None:
        """Register a singleton; built on first use unless `lazy` is False."""
        options = ResolveOptions(qualifier=qualifier, lazy=lazy)
        lifecycle = Lifecycle.LAZY_SINGLETON if options.lazy else Lifecycle.SINGLETON
        self.register(resolver, lifecycle, options.qualifier, provides=provides)

    def transient(
        self,
        resolver: Callable[..., object],
        *,
        qualifier: str = DEFAULT,
        provides: Any = None,
    ) -> None:
        self.register(resolver, Lifecycle.TRANSIENT, qualifier, provides=provides)

    def has(self, abstraction: Any, qualifier: str = DEFAULT) -> bool:
        with self._lock:
            return qualifier in self._bindings.get(abstraction, {})

    def lookup(self, abstraction: Any, qualifiers: Sequence[str]) -> Binding | None:
        """Find the binding of the first matching qualifier.

        Raise BindingNotFound when nothing at all is bound to `abstraction`;
        return None when it is bound, but under none of `qualifiers`.
        """
        with self._lock:
            slot = self._bindings.get(abstraction)
            if not slot:
                raise BindingNotFound(abstraction)

            for qualifier in qualifiers:
                if qualifier in slot:
                    return slot[qualifier]
            return None

    def reset(self) -> None:
        """Drop every binding."""
        with self._lock:
            self._bindings.clear()
        logger.debug("Container reset")

    @overload
    def resolve(self, abstraction: type[T], *, qualifier: str = ...) -> T: ...

    @overload
    def resolve(self, abstraction: Any, *, qualifier: str = ...) -> Any: ...

    def resolve(self, abstraction: Any, *, qualifier: str = DEFAULT) -> Any:
        """Resolve the abstraction to an instance.

        `qualifier` may list several candidates, e.g. ``"primary,type"`` tries
        the "primary" binding first and then the default one.
        """
        if abstraction is None:
            msg = "container: invalid abstraction None"
            raise InvalidTarget(msg)
        try:
            hash(abstraction)
        except TypeError as e:
            msg = f"container: invalid abstraction {abstraction!r}"
            raise InvalidTarget(msg) from e

        with self._lock:
            return self._make(abstraction, _Resolution(ResolveOptions(qualifier=qualifier)))

    def invoke(self, function: Callable[..., T], *, qualifier: str = DEFAULT) -> T:
        """Call `function` with its parameters resolved by type and return its result."""
        if not callable(function):
            msg = f"container: invalid function {function!r}"
            raise InvalidResolverShape(msg)

        factory = _Factory.of(function)
        with self._lock:
            return self._invoke(factory, _Resolution(ResolveOptions(qualifier=qualifier)))  # type: ignore[return-value]

    def call(self, receiver: Callable[..., object], *, qualifier: str = DEFAULT) -> None:
        """Invoke a receiver that returns nothing, or the exception it failed with."""
        result = self.invoke(receiver, qualifier=qualifier)
        if result is None:
            return
        if isinstance(result, BaseException):
            raise result

        msg = f"container: receiver {_describe(receiver)} must return None or an exception, got {result!r}"
        raise InvalidResolverShape(msg)

    def fill(self, target: object) -> None:
        """Assign every ``Annotated[T, Inject(...)]`` attribute of `target`.

        Attributes are written with `object.__setattr__`, so frozen
        dataclasses and underscore-prefixed attributes are filled too.
        Attributes assigned before a failing one keep their value.
        """
        if (
            target is None
            or inspect.isclass(target)
            or inspect.isroutine(target)
            or not (hasattr(target, "__dict__") or hasattr(type(target), "__slots__"))
        ):
            msg = f"container: invalid structure {target!r}"
            raise InvalidTarget(msg)

        ctx = _Resolution()
        with self._lock:
            for name, abstraction, marker in _injected_fields(type(target)):
                candidates = marker.candidates(name)
                try:
                    binding = self.lookup(abstraction, candidates)
                    if binding is None:
                        raise QualifierNotMatched(abstraction, candidates)
                except (BindingNotFound, QualifierNotMatched) as e:
                    raise FieldInjectionFailure(name, abstraction, candidates) from e

                object.__setattr__(target, name, binding.make(self, ctx))

    def _make(self, abstraction: Any, ctx: _Resolution) -> object:
        candidates = ctx.options.candidates()
        binding = self.lookup(abstraction, candidates)
        if binding is None:
            raise QualifierNotMatched(abstraction, candidates)
        return binding.make(self, ctx)

    def _invoke(self, factory: _Factory, ctx: _Resolution) -> object:
        args, kwargs = self._arguments(factory, ctx)
        return factory.unpack(factory.func(*args, **kwargs))

    def _arguments(self, factory: _Factory, ctx: _Resolution) -> tuple[list[Any], dict[str, Any]]:
        """Resolve each parameter in order; the first failure aborts the call.

        Resolution precedence:
        1. binding matching the call's qualifiers
        2. default, only when the abstraction has no binding at all
        3. error.
        """
        args: list[Any] = []
        kwargs: dict[str, Any] = {}

        candidates = ctx.options.candidates()
        for p in factory.parameters:
            if p.abstraction is _EMPTY:
                value = p.default
            else:
                try:
                    binding = self.lookup(p.abstraction, candidates)
                except BindingNotFound:
                    if not p.has_default:
                        raise
                    value = p.default
                else:
                    if binding is None:
                        raise QualifierNotMatched(p.abstraction, candidates)
                    # failures inside make are never replaced by the default
                    value = binding.make(self, ctx)

            if p.kind is inspect.Parameter.KEYWORD_ONLY:
                kwargs[p.name] = value
            else:
                args.append(value)

        return args, kwargs


def _describe(func: object) -> str:
    return getattr(func, "__qualname__", None) or repr(func)


def _signature(func: Callable[..., object]) -> inspect.Signature:
    if inspect.isclass(func) and func.__init__ is object.__init__ and func.__new__ is object.__new__:
        return inspect.Signature()
    try:
        return inspect.signature(func)
    except (TypeError, ValueError) as e:
        msg = f"container: cannot inspect the signature of {_describe(func)}"
        raise InvalidResolverShape(msg) from e


def _output_shape(func: object, ret: Any) -> tuple[Any, bool]:
    """Split a return annotation into (provided type, reports error)."""
    if ret is _EMPTY or ret is None or ret is type(None):
        return None, False

    if get_origin(ret) is tuple:
        items = get_args(ret)
        if items and _is_error_type(items[-1]):
            if len(items) != 2:
                msg = f"container: {_describe(func)} must return one value and an optional error, got {ret!r}"
                raise InvalidResolverShape(msg)
            return items[0], True

    return ret, False


def _is_error_type(tp: Any) -> bool:
    if get_origin(tp) in (Union, types.UnionType):
        members = [m for m in get_args(tp) if m is not type(None)]
        return bool(members) and all(_is_error_type(m) for m in members)
    return inspect.isclass(tp) and issubclass(tp, BaseException)


def _injected_fields(cls: type) -> Iterator[tuple[str, Any, Inject]]:
    try:
        hints = get_type_hints(cls, include_extras=True)
    except NameError as exc:
        msg = f"container: cannot evaluate annotations of {cls.__qualname__} ('{exc.name}' is undefined)"
        raise InvalidTarget(msg) from exc

    for name, hint in hints.items():
        if get_origin(hint) is not Annotated:
            continue
        abstraction, *metadata = get_args(hint)
        for m in metadata:
            if m is Inject:
                yield name, abstraction, Inject()
                break
            if isinstance(m, Inject):
                yield name, abstraction, m
                break


def _get_type_hints(func: object) -> dict[str, Any]:
    if inspect.isclass(func):
        return _get_init_type_hints(func)

    if isinstance(func, functools.partial):
        target = func.func
    elif inspect.isroutine(func):
        target = func
    else:
        target = type(func).__call__

    try:
        return get_type_hints(target)
    except TypeError:
        return {}
    except NameError as exc:
        logger.warning("'%s' name error retrieving %s type hints", exc.name, _describe(func))
        return {}


def _get_init_type_hints(cls: type) -> dict[str, Any]:
    try:
        init = inspect.getattr_static(cls, "__init__")
        hints = get_type_hints(init)
    except TypeError:
        hints = {}
    except NameError as exc:
        logger.warning("'%s' name error retrieving %s (%s) type hints", exc.name, cls.__name__, cls.__qualname__)
        hints = {}

    hints.pop("return", None)
    return hints
