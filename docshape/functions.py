"""
Query and mutation functions with declared argument shapes.

A function is a handler plus a signature: its kind, an Object node its
arguments must satisfy, and optionally the node its return value must
satisfy. The FunctionRegistry dispatches calls, validating arguments
before the handler runs.

Invariants:
    - A handler is never invoked with arguments that fail validation
    - Queries receive a read-only database view; mutations a writable one
    - A declared return node is checked after every call
    - Function names are unique within a registry

Example:
    >>> functions = FunctionRegistry()
    >>> @functions.query(args={})
    ... def getGame(ctx, args):
    ...     return ctx.db.query("games").first()
    >>> functions.call("getGame", {}, store)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Union

from .errors import (
    ArgumentValidationError,
    DuplicateFunctionError,
    InvalidTypeError,
    ReturnValidationError,
    UnknownFunctionError,
)
from .schema.types import ObjectType, TypeNode
from .schema.validate import validate
from .store import DatabaseReader, DocumentStore

logger = logging.getLogger(__name__)

ArgsSpec = Union[ObjectType, Mapping[str, TypeNode], None]


class FunctionKind(Enum):
    """Kinds of callable functions."""

    QUERY = "query"
    MUTATION = "mutation"

    @classmethod
    def from_str(cls, value: str) -> FunctionKind:
        for kind in cls:
            if kind.value == value:
                return kind
        valid = [k.value for k in cls]
        raise InvalidTypeError(f"Invalid function kind '{value}'. Valid kinds: {valid}", valid_types=valid)


@dataclass(frozen=True)
class FunctionSignature:
    """Declared interface of one function.

    Attributes:
        name: Function name used by callers
        kind: Query or mutation
        args: Object node the arguments must satisfy
        returns: Node the return value must satisfy (None to skip the check)
    """

    name: str
    kind: FunctionKind
    args: ObjectType = field(default_factory=ObjectType)
    returns: Optional[TypeNode] = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise InvalidTypeError("Function name must be a non-empty string")
        object.__setattr__(self, "args", as_args_node(self.args))
        if self.returns is not None and not isinstance(self.returns, TypeNode):
            raise InvalidTypeError(f"Function '{self.name}' returns must be a type node")


@dataclass(frozen=True)
class FunctionContext:
    """What a handler receives besides its arguments."""

    db: DatabaseReader
    function: FunctionSignature


Handler = Callable[[FunctionContext, Dict[str, Any]], Any]


def as_args_node(args: ArgsSpec) -> ObjectType:
    """Normalize an argument declaration into an Object node."""
    if args is None:
        return ObjectType()
    if isinstance(args, ObjectType):
        return args
    if isinstance(args, Mapping):
        return ObjectType(tuple(args.items()))
    raise InvalidTypeError(f"Function args must be an object or a mapping, got {type(args).__name__}")


class FunctionRegistry:
    """Registry and dispatcher for queries and mutations.

    Example:
        >>> functions = FunctionRegistry()
        >>> @functions.mutation(args={"amount": v.int64()})
        ... def addWin(ctx, args):
        ...     ...
    """

    def __init__(self, max_depth: Optional[int] = None) -> None:
        self._functions: Dict[str, tuple[FunctionSignature, Handler]] = {}
        self.max_depth = max_depth

    def register(self, signature: FunctionSignature, handler: Handler) -> None:
        """Register a handler under its signature's name.

        Raises:
            DuplicateFunctionError: If the name is already registered
        """
        if signature.name in self._functions:
            raise DuplicateFunctionError(signature.name)
        self._functions[signature.name] = (signature, handler)
        logger.debug(f"Registered {signature.kind.value} {signature.name}")

    def query(
        self,
        name: Optional[str] = None,
        *,
        args: ArgsSpec = None,
        returns: Optional[TypeNode] = None,
    ) -> Callable[[Handler], Handler]:
        """Decorator registering a query handler."""
        return self._decorator(FunctionKind.QUERY, name, args, returns)

    def mutation(
        self,
        name: Optional[str] = None,
        *,
        args: ArgsSpec = None,
        returns: Optional[TypeNode] = None,
    ) -> Callable[[Handler], Handler]:
        """Decorator registering a mutation handler."""
        return self._decorator(FunctionKind.MUTATION, name, args, returns)

    def _decorator(
        self,
        kind: FunctionKind,
        name: Optional[str],
        args: ArgsSpec,
        returns: Optional[TypeNode],
    ) -> Callable[[Handler], Handler]:
        def decorator(handler: Handler) -> Handler:
            signature = FunctionSignature(name or handler.__name__, kind, as_args_node(args), returns)
            self.register(signature, handler)
            return handler

        return decorator

    def signature(self, name: str) -> FunctionSignature:
        """Get a function's signature.

        Raises:
            UnknownFunctionError: If no function has that name
        """
        entry = self._functions.get(name)
        if entry is None:
            raise UnknownFunctionError(name)
        return entry[0]

    def signatures(self) -> Iterator[FunctionSignature]:
        """Iterate over signatures in registration order."""
        for signature, _ in self._functions.values():
            yield signature

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    def __len__(self) -> int:
        return len(self._functions)

    def call(self, name: str, args: Optional[Mapping[str, Any]], store: DocumentStore) -> Any:
        """Validate arguments, run the handler and validate its result.

        Args:
            name: Function name
            args: Argument mapping (None is treated as no arguments)
            store: Store the handler reads from or writes to

        Returns:
            Whatever the handler returns

        Raises:
            UnknownFunctionError: If no function has that name
            ArgumentValidationError: If the arguments do not match; the
                handler is not invoked
            ReturnValidationError: If the result does not match ``returns``
        """
        entry = self._functions.get(name)
        if entry is None:
            raise UnknownFunctionError(name)
        signature, handler = entry
        args = {} if args is None else args

        result = validate(signature.args, args, max_depth=self.max_depth)
        if result.error is not None:
            error = result.error
            logger.warning(f"Rejected call to {name}: {error.message}")
            raise ArgumentValidationError(
                error.path, error.expected_kind, error.actual_kind, message=error.message
            )

        db = store.writer() if signature.kind is FunctionKind.MUTATION else store.reader()
        value = handler(FunctionContext(db=db, function=signature), dict(args))

        if signature.returns is not None:
            returned = validate(signature.returns, value, max_depth=self.max_depth)
            if returned.error is not None:
                error = returned.error
                raise ReturnValidationError(
                    error.path, error.expected_kind, error.actual_kind, message=error.message
                )
        return value
