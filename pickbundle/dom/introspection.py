"""Framework component introspection behind a provider interface.

Some UI frameworks hang internal bookkeeping off DOM elements as expando
properties. The inspector never reads those shapes directly: it asks
:func:`select_provider` for a provider matching the markers present on an
element's runtime properties and talks to that provider only.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Sequence

from .serialization import FUNCTION_MARKER, is_function_value, serialize

logger = logging.getLogger(__name__)

MAX_HOOK_STATES = 4


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


class IntrospectionProvider:
    """No-op provider used when an element carries no known framework markers."""

    name: str = "none"

    def matches(self, runtime: Mapping[str, Any]) -> bool:
        return False

    def component_chain(self, runtime: Mapping[str, Any]) -> Optional[List[str]]:
        return None

    def component_state(self, runtime: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        return None


class NullIntrospection(IntrospectionProvider):
    pass


class ReactFiberIntrospection(IntrospectionProvider):
    """Reads the React fiber attached to a host element."""

    name = "react"
    KEY_PREFIXES = ("__reactFiber$", "__reactInternalInstance$")

    def _fiber(self, runtime: Mapping[str, Any]) -> Any:
        for key in runtime:
            if str(key).startswith(self.KEY_PREFIXES):
                return runtime[key]
        return None

    def matches(self, runtime: Mapping[str, Any]) -> bool:
        return self._fiber(runtime) is not None

    @staticmethod
    def _component_name(fiber_type: Any) -> Optional[str]:
        if isinstance(fiber_type, Mapping):
            marker = fiber_type.get(FUNCTION_MARKER)
            name = fiber_type.get("displayName") or (marker if isinstance(marker, str) else None)
            return name or fiber_type.get("name")
        return getattr(fiber_type, "displayName", None) or getattr(fiber_type, "__name__", None)

    def _walk(self, runtime: Mapping[str, Any]):
        fiber = self._fiber(runtime)
        seen = set()
        while fiber is not None and id(fiber) not in seen:
            seen.add(id(fiber))
            yield fiber
            fiber = _field(fiber, "return")

    def component_chain(self, runtime: Mapping[str, Any]) -> Optional[List[str]]:
        components: List[str] = []
        for fiber in self._walk(runtime):
            fiber_type = _field(fiber, "type")
            if not is_function_value(fiber_type):
                continue
            name = self._component_name(fiber_type)
            if name and not str(name).startswith("_"):
                components.append(str(name))
        return components or None

    def component_state(self, runtime: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        for fiber in self._walk(runtime):
            if not is_function_value(_field(fiber, "type")):
                continue
            result: Dict[str, Any] = {}

            props = self._props(_field(fiber, "memoizedProps"))
            if props:
                result["props"] = props

            try:
                states = self._hook_states(_field(fiber, "memoizedState"))
            except Exception as exc:
                logger.debug(f"Hook state walk failed: {exc}")
                states = []
            if states:
                result["state"] = states

            if result:
                return result
        return None

    @staticmethod
    def _props(memoized_props: Any) -> Dict[str, Any]:
        if not isinstance(memoized_props, Mapping):
            return {}
        props: Dict[str, Any] = {}
        for key, value in memoized_props.items():
            if key == "children":
                continue
            props[str(key)] = serialize(value)
        return props

    @staticmethod
    def _hook_states(state_node: Any) -> List[Any]:
        if state_node is None or isinstance(state_node, (str, int, float, bool)):
            return []
        states: List[Any] = []
        count = 0
        while state_node is not None and count < MAX_HOOK_STATES:
            value = _field(state_node, "memoizedState")
            if value is not None and not is_function_value(value):
                states.append(serialize(value))
            state_node = _field(state_node, "next")
            count += 1
        return states


PROVIDERS: Sequence[IntrospectionProvider] = (ReactFiberIntrospection(),)
NULL_PROVIDER = NullIntrospection()


def select_provider(runtime: Optional[Mapping[str, Any]]) -> IntrospectionProvider:
    """Probe ``runtime`` for known markers and return the matching provider."""

    if not runtime:
        return NULL_PROVIDER
    for provider in PROVIDERS:
        try:
            if provider.matches(runtime):
                return provider
        except Exception as exc:
            logger.debug(f"Provider {provider.name} marker check failed: {exc}")
    return NULL_PROVIDER


__all__ = [
    "IntrospectionProvider",
    "NULL_PROVIDER",
    "NullIntrospection",
    "PROVIDERS",
    "ReactFiberIntrospection",
    "select_provider",
]
