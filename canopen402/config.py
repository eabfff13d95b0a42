"""Parsing of the chain node configuration: node lists, defaults and object names."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from canopen402.status import Level


class ConfigError(ValueError):
    """Raised when the node configuration is malformed."""


def parse_object_name(name: str) -> tuple[str, bool]:
    """Split an object name at ``!``.

    Everything from the first ``!`` on is dropped; the mark means the object
    is to be read from the device rather than from the cache. Returns the
    bare name and whether the mark was present.
    """
    if not isinstance(name, str):
        raise ConfigError(f"object name {name!r} must be a string")
    bare, mark, _ = name.partition("!")
    return bare, bool(mark)


def _as_struct(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"expected a struct, got {type(value).__name__}")
    return dict(value)


def merge_structs(
    a: Optional[Mapping[str, Any]],
    b: Optional[Mapping[str, Any]],
    recursive: bool = True,
) -> dict[str, Any]:
    """Merge ``b`` into a copy of ``a``; keys already in ``a`` win.

    With ``recursive`` set, structs present in both are merged the same way.
    """
    merged = copy.deepcopy(_as_struct(a))
    for key, value in _as_struct(b).items():
        if key not in merged:
            merged[key] = copy.deepcopy(value)
        elif (
            recursive
            and isinstance(merged[key], Mapping)
            and isinstance(value, Mapping)
        ):
            merged[key] = merge_structs(merged[key], value, True)
    return merged


def normalize_nodes(nodes: Any) -> dict[str, Any]:
    """Turn a node list into a struct keyed by node name.

    A struct is returned as a copy; every entry of a list must carry a name.
    """
    if nodes is None:
        return {}
    if isinstance(nodes, Mapping):
        return dict(nodes)
    if not isinstance(nodes, (list, tuple)):
        raise ConfigError("nodes must be a list or a struct")
    result: dict[str, Any] = {}
    for i, entry in enumerate(nodes):
        if not isinstance(entry, Mapping) or "name" not in entry:
            raise ConfigError(f"Node at list index {i} has no name")
        name = entry["name"]
        if not isinstance(name, str):
            raise ConfigError(f"Node at list index {i} has no name")
        result[name] = entry
    return result


@dataclass
class NodeConfig:
    """The settings of one node after merging with the defaults."""

    key: str
    name: str
    node_id: int
    eds_file: str
    eds_pkg: Optional[str] = None
    overlay: list[tuple[str, str]] = field(default_factory=list)
    log_entries: list[tuple[Level, str, bool]] = field(default_factory=list)
    publish: list[tuple[str, bool]] = field(default_factory=list)
    params: dict[str, Any] = field(default_factory=dict)

    @property
    def publish_topics(self) -> list[str]:
        """Topic names for the published objects, prefixed by the node name."""
        return [f"{self.name}_{obj}" for obj, _ in self.publish]


_LOG_LEVELS: tuple[tuple[str, Level], ...] = (
    ("log", Level.OK),
    ("log_warn", Level.WARN),
    ("log_error", Level.ERROR),
)


def _object_list(merged: Mapping[str, Any], param: str) -> list[tuple[str, bool]]:
    objs = merged[param]
    if not isinstance(objs, (list, tuple)):
        raise ConfigError(f"Could not parse {param} parameter")
    try:
        return [parse_object_name(obj) for obj in objs]
    except ConfigError:
        raise ConfigError(f"Could not parse {param} parameter") from None


def _overlay(merged: Mapping[str, Any]) -> list[tuple[str, str]]:
    if "dcf_overlay" not in merged:
        return []
    dcf_overlay = merged["dcf_overlay"]
    if not isinstance(dcf_overlay, Mapping):
        raise ConfigError("dcf_overlay is no struct")
    overlay = []
    for key in sorted(dcf_overlay):
        value = dcf_overlay[key]
        if not isinstance(value, str):
            raise ConfigError(f"dcf_overlay '{key}' must be string")
        overlay.append((key, value))
    return overlay


def _node_config(key: str, entry: Any, defaults: Mapping[str, Any]) -> NodeConfig:
    if not isinstance(entry, Mapping):
        raise ConfigError(f"Node '{key}' has no id")
    node_id = entry.get("id")
    if not isinstance(node_id, int) or isinstance(node_id, bool):
        raise ConfigError(f"Node '{key}' has no id")

    merged = merge_structs(entry, defaults)
    if "name" not in entry:
        merged["name"] = key

    overlay = _overlay(merged)

    eds = merged.get("eds_file")
    if not isinstance(eds, str):
        raise ConfigError("EDS path '' invalid")

    eds_pkg = merged.get("eds_pkg")
    if not isinstance(eds_pkg, str):
        eds_pkg = None

    log_entries: list[tuple[Level, str, bool]] = []
    for param, level in _LOG_LEVELS:
        if param in merged:
            log_entries.extend(
                (level, obj, forced) for obj, forced in _object_list(merged, param)
            )

    name = merged["name"]
    if not isinstance(name, str):
        raise ConfigError(f"Node '{key}' has an invalid name")

    publish = _object_list(merged, "publish") if "publish" in merged else []

    return NodeConfig(
        key=key,
        name=name,
        node_id=node_id,
        eds_file=eds,
        eds_pkg=eds_pkg,
        overlay=overlay,
        log_entries=log_entries,
        publish=publish,
        params=merged,
    )


def node_configs(
    nodes: Any, defaults: Optional[Mapping[str, Any]] = None
) -> list[NodeConfig]:
    """Parse all nodes, ordered by key, each merged with ``defaults``."""
    defaults = _as_struct(defaults)
    struct = normalize_nodes(nodes)
    return [_node_config(key, struct[key], defaults) for key in sorted(struct)]


def iter_node_configs(
    nodes: Any, defaults: Optional[Mapping[str, Any]] = None
) -> Iterable[NodeConfig]:
    """Yield the parsed nodes one by one, in the same order as ``node_configs``."""
    defaults = _as_struct(defaults)
    struct = normalize_nodes(nodes)
    for key in sorted(struct):
        yield _node_config(key, struct[key], defaults)