"""Operations on nested locale trees: right-biased merging and key sorting."""
import copy
from typing import Any, Dict


def deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge ``overlay`` into a copy of ``base``.

    When both sides hold a mapping for the same key the two mappings are merged,
    otherwise the overlay value replaces the base value. Unlike a merge that
    collects both values into a list, conflicting leaves are replaced. Keys that
    only exist in ``base`` are kept.

    Neither argument is modified and the result shares no mutable value with
    them.

    Args:
        base: The tree to merge into, e.g. the locale file before a pull.
        overlay: The tree whose values win, e.g. the locale file after a pull.

    Returns:
        The merged tree.
    """
    merged = {}
    for key, value in base.items():
        if key not in overlay:
            merged[key] = copy.deepcopy(value)
            continue
        overlay_value = overlay[key]
        if isinstance(value, dict) and isinstance(overlay_value, dict):
            merged[key] = deep_merge(value, overlay_value)
        else:
            merged[key] = copy.deepcopy(overlay_value)
    for key, value in overlay.items():
        if key not in base:
            merged[key] = copy.deepcopy(value)
    return merged


def sort_keys(tree: Any) -> Any:
    """
    Sort every mapping in ``tree`` by key, at every depth, in place.

    Keys are compared by their string form, so the order is plain code point
    order and mixed key types (e.g. ``404`` next to ``"Title"``) never raise.
    Mappings inside lists are sorted too; the lists themselves keep their order.

    Returns:
        The same ``tree`` object, for chaining.
    """
    if isinstance(tree, dict):
        items = sorted(tree.items(), key=lambda item: str(item[0]))
        tree.clear()
        tree.update(items)
        for value in tree.values():
            sort_keys(value)
    elif isinstance(tree, list):
        for item in tree:
            sort_keys(item)
    return tree
