"""Dot-path helpers for nested profile and status documents.

Every engine component works on a flattened projection of the vendor
documents: ``{"timer": {"relativeHourToStart": 2}}`` becomes
``{"timer.relativeHourToStart": 2}``. Array indices are kept as numeric
path segments (``"zones.1.name"``).
"""

import copy
from typing import Any, Optional


def flatten(tree: Any, prefix: str = "") -> dict[str, Any]:
    """Flatten a nested dict/list tree into a mapping of dot-paths to leaves.

    Args:
        tree: Arbitrary JSON-like value. Anything that is not a dict or list
            at the root yields an empty mapping.
        prefix: Path prefix prepended to every key (used for recursion)

    Returns:
        Dictionary mapping dot-joined paths to scalar leaf values
    """
    out: dict[str, Any] = {}
    if isinstance(tree, dict):
        items = ((str(k), v) for k, v in tree.items())
    elif isinstance(tree, list):
        items = ((str(i), v) for i, v in enumerate(tree))
    else:
        return out

    for key, value in items:
        path = f"{prefix}.{key}" if prefix else key
        if isinstance(value, (dict, list)):
            out.update(flatten(value, path))
        else:
            out[path] = value
    return out


def get_path(tree: Any, path: str) -> Optional[Any]:
    """Read a dot-path from a nested tree, or None if any segment is missing."""
    node = tree
    for part in path.split("."):
        if isinstance(node, dict):
            if part not in node:
                return None
            node = node[part]
        elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
            node = node[int(part)]
        else:
            return None
    return node


def set_by_path(tree: dict[str, Any], path: str, value: Any) -> None:
    """Set ``value`` at a dot-path, creating intermediate dicts as needed.

    Non-dict intermediates are replaced, so the last write always wins.
    """
    parts = path.split(".")
    node = tree
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


def densify(node: Any) -> Any:
    """Turn dicts keyed by the indices 0..n-1 into lists.

    Sparse index maps keep their keys so every element stays at its real
    index: ``{"0": a, "1": b}`` becomes ``[a, b]`` but ``{"1": b}`` is kept.
    """
    if isinstance(node, list):
        return [densify(v) for v in node]
    if not isinstance(node, dict):
        return node
    converted = {k: densify(v) for k, v in node.items()}
    if converted and all(str(k).isdigit() for k in converted):
        indices = sorted(int(k) for k in converted)
        if indices == list(range(len(indices))):
            return [converted[k] for k in sorted(converted, key=lambda k: int(k))]
    return converted


def unflatten(flat: dict[str, Any]) -> Any:
    """Rebuild a nested tree from a flattened mapping.

    Levels keyed by the contiguous indices 0..n-1 come back as lists.
    """
    tree: dict[str, Any] = {}
    for path, value in flat.items():
        set_by_path(tree, path, value)
    return densify(tree)


def deep_merge(base: Any, patch: Any) -> Any:
    """Merge a partial snapshot onto a retained one.

    Objects are merged recursively; everything else (arrays included) is
    replaced wholesale by the patch value. Neither input is mutated.
    """
    if not isinstance(base, dict) or not isinstance(patch, dict):
        return copy.deepcopy(patch)

    merged = copy.deepcopy(base)
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def strip_numeric_segments(path: str) -> str:
    """Drop purely numeric segments: ``"temp.0.target"`` -> ``"temp.target"``."""
    return ".".join(p for p in path.split(".") if not p.isdigit())


def collect_array_indices(flat: dict[str, Any], container: str) -> list[int]:
    """Collect the numeric indices present directly under ``container``."""
    prefix = container + "."
    found: set[int] = set()
    for key in flat:
        if not key.startswith(prefix):
            continue
        head = key[len(prefix):].split(".", 1)[0]
        if head.isdigit():
            found.add(int(head))
    return sorted(found)


def find_array_index(
    flat: dict[str, Any], container: str, where: dict[str, Any]
) -> Optional[int]:
    """Find the first element of an array whose fields equal ``where``.

    Values are compared as strings, so ``1`` matches ``"1"``. An empty
    predicate selects the first element.
    """
    for index in collect_array_indices(flat, container):
        base = f"{container}.{index}."
        if all(
            _as_text(flat.get(base + str(field))) == _as_text(expected)
            for field, expected in where.items()
        ):
            return index
    return None


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
