"""Function registry, inventory store and dispatch table.

The registry is the static catalogue offered to the model. The dispatcher
maps each function name to a typed handler:

    add_inventory(name)     : append an item; displays "Gained: <name>"
    remove_inventory(name)  : drop the first matching item; displays
                              "Lost: <name>" when something was removed
    get_inventory()         : read-only; returns a system turn with the
                              comma-joined contents so the model can see them

Unknown names are logged and ignored.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass

from gpt_adventure.models import ArgumentValue, FunctionCall, FunctionSpec, Parameter, Turn

logger = logging.getLogger(__name__)

Display = Callable[[str], None]


class FunctionArgumentError(ValueError):
    """Raised when function-call arguments do not match the FunctionSpec."""


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class FunctionRegistry:
    """Immutable catalogue of FunctionSpecs, keyed by unique name."""

    def __init__(self, specs: Iterable[FunctionSpec] = ()) -> None:
        self._specs: dict[str, FunctionSpec] = {}
        for spec in specs:
            if spec.name in self._specs:
                raise ValueError(f"Duplicate function name: {spec.name!r}")
            self._specs[spec.name] = spec

    def get(self, name: str) -> FunctionSpec | None:
        return self._specs.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __iter__(self) -> Iterator[FunctionSpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)

    def __bool__(self) -> bool:
        return bool(self._specs)


_ITEM_NAME = Parameter(name="name", type="string", description="The name of the item")

INVENTORY_FUNCTIONS = FunctionRegistry([
    FunctionSpec(
        name="add_inventory",
        description="Add an item to the player's inventory",
        parameters=(_ITEM_NAME,),
    ),
    FunctionSpec(
        name="remove_inventory",
        description="Remove an item from the player's inventory",
        parameters=(_ITEM_NAME,),
    ),
    FunctionSpec(
        name="get_inventory",
        description="Get the player's inventory",
    ),
])

EMPTY_REGISTRY = FunctionRegistry()


def _matches(type_: str, value: ArgumentValue) -> bool:
    if type_ == "string":
        return isinstance(value, str)
    if type_ == "boolean":
        return isinstance(value, bool)
    # bool is an int subclass but never a valid number here
    if isinstance(value, bool):
        return False
    if type_ == "integer":
        return isinstance(value, int)
    return isinstance(value, (int, float))


def validate_arguments(spec: FunctionSpec, arguments: Mapping[str, ArgumentValue]) -> None:
    """Check arguments against the spec's declared parameters.

    Raises FunctionArgumentError on a missing required argument, an argument
    the spec does not declare, or a value of the wrong primitive type.
    """
    for param in spec.parameters:
        if param.required and param.name not in arguments:
            raise FunctionArgumentError(f"{spec.name}: missing required argument {param.name!r}")
    for key, value in arguments.items():
        param = spec.parameter(key)
        if param is None:
            raise FunctionArgumentError(f"{spec.name}: unexpected argument {key!r}")
        if not _matches(param.type, value):
            raise FunctionArgumentError(
                f"{spec.name}: argument {key!r} must be {param.type}, got {type(value).__name__}"
            )


# ---------------------------------------------------------------------------
# Inventory store
# ---------------------------------------------------------------------------

class Inventory:
    """Item names in acquisition order. Duplicates are allowed."""

    def __init__(self, items: Iterable[str] = ()) -> None:
        self._items: list[str] = list(items)

    def add(self, name: str) -> None:
        self._items.append(name)

    def remove(self, name: str) -> bool:
        """Remove the first occurrence of name. Returns False if absent."""
        try:
            self._items.remove(name)
        except ValueError:
            return False
        return True

    def items(self) -> list[str]:
        return list(self._items)

    def describe(self) -> str:
        return ", ".join(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, name: object) -> bool:
        return name in self._items


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DispatchResult:
    handled: bool
    system_turn: Turn | None = None


class FunctionDispatcher:
    """Runs function calls against an Inventory.

    Only functions present in the registry are dispatched; arguments are
    validated against their FunctionSpec first.
    """

    def __init__(
        self,
        inventory: Inventory,
        display: Display,
        registry: FunctionRegistry = INVENTORY_FUNCTIONS,
    ) -> None:
        self._inventory = inventory
        self._display = display
        self._registry = registry
        self._handlers: dict[str, Callable[[FunctionCall], DispatchResult]] = {
            "add_inventory": self._add_inventory,
            "remove_inventory": self._remove_inventory,
            "get_inventory": self._get_inventory,
        }

    def dispatch(self, call: FunctionCall) -> DispatchResult:
        handler = self._handlers.get(call.name)
        spec = self._registry.get(call.name)
        if handler is None or spec is None:
            logger.warning("Unsupported function %r, ignored", call.name)
            return DispatchResult(handled=False)
        validate_arguments(spec, call.arguments)
        logger.debug("dispatch %s(%s)", call.name, call.arguments)
        return handler(call)

    def _add_inventory(self, call: FunctionCall) -> DispatchResult:
        name = str(call.arguments["name"])
        self._inventory.add(name)
        self._display(f"Gained: {name}")
        return DispatchResult(handled=True)

    def _remove_inventory(self, call: FunctionCall) -> DispatchResult:
        name = str(call.arguments["name"])
        if self._inventory.remove(name):
            self._display(f"Lost: {name}")
        else:
            logger.warning("remove_inventory: %r not found in inventory", name)
        return DispatchResult(handled=True)

    def _get_inventory(self, call: FunctionCall) -> DispatchResult:
        return DispatchResult(handled=True, system_turn=Turn.system(self._inventory.describe()))
