from typing import Any, Dict, FrozenSet, Optional, Tuple

KeyPath = Tuple[Any, ...]


def is_blank(value: Any) -> bool:
    """
    Checks whether a translated value is an empty placeholder.

    ``None``, the empty string and empty collections are blank. The string
    ``"0"`` is real content and is never blank, and neither are numbers or
    booleans.
    """
    if value is None:
        return True
    if isinstance(value, (str, dict, list, tuple)):
        return len(value) == 0
    return False


def collect_blank_paths(reference_subtree: Dict[str, Any], prefix: KeyPath = ()) -> FrozenSet[KeyPath]:
    """
    Collects the key paths of every blank entry in the reference locale.

    Blank entries in the reference locale are intentional, so the matching
    entries of other locales are allowed to stay blank.

    Args:
        reference_subtree: The reference locale's tree, without the locale key.
        prefix: The key path of ``reference_subtree`` within the locale tree.

    Returns:
        A frozenset of key path tuples relative to the locale subtree.
    """
    paths = set()
    for key, value in reference_subtree.items():
        path = prefix + (key,)
        if isinstance(value, dict) and value:
            paths.update(collect_blank_paths(value, path))
        elif is_blank(value):
            paths.add(path)
    return frozenset(paths)


def remove_blank_strings(
        locale_subtree: Dict[str, Any],
        allowed_blank_paths: FrozenSet[KeyPath],
        prefix: KeyPath = ()
) -> int:
    """
    Deletes blank leaves that are not blank in the reference locale.

    The tree is modified in place. A parent is never removed because its
    children were deleted; see ``remove_echo_strings`` for namespace pruning.

    Args:
        locale_subtree: A translated locale's tree, without the locale key.
        allowed_blank_paths: The result of ``collect_blank_paths`` for the reference locale.
        prefix: The key path of ``locale_subtree`` within the locale tree.

    Returns:
        The number of deleted entries.
    """
    removed = 0
    for key in list(locale_subtree.keys()):
        value = locale_subtree[key]
        path = prefix + (key,)
        if isinstance(value, dict) and value:
            removed += remove_blank_strings(value, allowed_blank_paths, path)
        elif is_blank(value) and path not in allowed_blank_paths:
            del locale_subtree[key]
            removed += 1
    return removed


def remove_echo_strings(locale_subtree: Dict[str, Any], reference_subtree: Dict[str, Any]) -> int:
    """
    Deletes entries whose value is identical to the reference locale's value.

    The translation service fills untranslated entries with the source text.
    Such echoes are removed so the reference locale is used as the fallback.
    Works on the ``namespace -> key -> value`` layout of YAML locale files: a
    namespace left empty afterwards is removed as well.

    Args:
        locale_subtree: A translated locale's tree, without the locale key. Modified in place.
        reference_subtree: The reference locale's tree, without the locale key.

    Returns:
        The number of deleted entries, not counting pruned namespaces.
    """
    removed = 0
    for namespace in list(locale_subtree.keys()):
        if namespace not in reference_subtree:
            continue
        entries = locale_subtree[namespace]
        reference_entries = reference_subtree[namespace]
        if isinstance(entries, dict) and isinstance(reference_entries, dict):
            for key in list(entries.keys()):
                if key in reference_entries and entries[key] == reference_entries[key]:
                    del entries[key]
                    removed += 1
            if not entries:
                del locale_subtree[namespace]
        elif entries == reference_entries:
            del locale_subtree[namespace]
            removed += 1
    return removed


def remove_echo_entries(dictionary: Dict[str, Any], reference_dictionary: Dict[str, Any]) -> int:
    """
    Deletes keys of a flat script dictionary whose value matches the reference dictionary.

    Returns:
        The number of deleted keys.
    """
    echoed_keys = [
        key for key, value in dictionary.items()
        if key in reference_dictionary and reference_dictionary[key] == value
    ]
    for key in echoed_keys:
        del dictionary[key]
    return len(echoed_keys)


def filter_yaml_locales(
        tree: Dict[str, Any],
        reference_tree: Optional[Dict[str, Any]],
        reference_locale: str
) -> Tuple[int, int]:
    """
    Applies the blank and echo filters to every translated locale of a YAML locale file.

    Args:
        tree: The decoded file, keyed by locale code. Modified in place.
        reference_tree: The decoded reference file, or None when there is none.
        reference_locale: The locale code of the reference locale, e.g. ``en``.

    Returns:
        A tuple of (removed blank entries, removed echo entries). Nothing is
        removed when there is no reference locale to compare against.
    """
    if not reference_tree:
        return 0, 0
    reference_subtree = reference_tree.get(reference_locale)
    if not isinstance(reference_subtree, dict):
        return 0, 0

    allowed_blank_paths = collect_blank_paths(reference_subtree)
    blanks_removed = 0
    echoes_removed = 0
    for locale, locale_subtree in tree.items():
        if locale == reference_locale or not isinstance(locale_subtree, dict):
            continue
        blanks_removed += remove_blank_strings(locale_subtree, allowed_blank_paths)
        echoes_removed += remove_echo_strings(locale_subtree, reference_subtree)
    return blanks_removed, echoes_removed


def filter_json_dictionary(
        dictionary: Dict[str, Any],
        reference_dictionary: Optional[Dict[str, Any]]
) -> Tuple[int, int]:
    """
    Applies the blank and echo filters to a flat script dictionary.

    Returns:
        A tuple of (removed blank entries, removed echo entries).
    """
    if reference_dictionary is None:
        return 0, 0
    allowed_blank_paths = collect_blank_paths(reference_dictionary)
    blanks_removed = remove_blank_strings(dictionary, allowed_blank_paths)
    echoes_removed = remove_echo_entries(dictionary, reference_dictionary)
    return blanks_removed, echoes_removed
