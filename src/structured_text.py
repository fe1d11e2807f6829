"""
Encoding and decoding of the structured text formats used by locale files.

YAML is used for the server-side ``lang/*.yml`` files and JSON for the
``client/lang/src/*.json`` script dictionaries. Both directions are strict:
text that cannot be parsed raises ``DecodingError`` and data that cannot be
written as valid UTF-8 raises ``EncodingError``. Nothing is silently mangled.
"""
import json
import os
import re
from typing import Any, Callable, Dict, NamedTuple

import yaml
from yaml.constructor import ConstructorError

from src.errors import DecodingError, EncodingError

MALFORMED_UTF8_MESSAGE = 'Malformed UTF-8 characters, possibly incorrectly encoded'

# Longest stretch of the offending text quoted in a DecodingError message.
ERROR_PREVIEW_LENGTH = 200

JSON_INDENT = 4
YAML_INDENT = 2

YAML_BOOL_TAG = 'tag:yaml.org,2002:bool'
YAML_INT_TAG = 'tag:yaml.org,2002:int'
YAML_FLOAT_TAG = 'tag:yaml.org,2002:float'
YAML_TIMESTAMP_TAG = 'tag:yaml.org,2002:timestamp'
YAML_MERGE_TAG = 'tag:yaml.org,2002:merge'

# Plain scalar rules of the YAML 1.2 core schema, in resolution order.
YAML12_RESOLVERS = [
    (YAML_BOOL_TAG, r'^(?:true|True|TRUE|false|False|FALSE)$', 'tTfF'),
    (YAML_INT_TAG, r'^[-+]?(?:0|[1-9][0-9]*)$', '-+0123456789'),
    (YAML_INT_TAG, r'^0o[0-7]+$', '0'),
    (YAML_INT_TAG, r'^0x[0-9a-fA-F]+$', '0'),
    (YAML_FLOAT_TAG,
     r'^[-+]?(?:\.[0-9]+(?:[eE][-+]?[0-9]+)?|[0-9]+\.[0-9]*(?:[eE][-+]?[0-9]+)?|[0-9]+[eE][-+]?[0-9]+)$',
     '-+.0123456789'),
    (YAML_FLOAT_TAG, r'^[-+]?\.(?:inf|Inf|INF)$', '-+.'),
    (YAML_FLOAT_TAG, r'^\.(?:nan|NaN|NAN)$', '.'),
]


def _yaml12_implicit_resolvers() -> Dict[str, list]:
    """
    PyYAML's SafeLoader resolvers with the YAML 1.1 bool, int, float and
    timestamp rules replaced by their YAML 1.2 core schema counterparts.
    """
    replaced = (YAML_BOOL_TAG, YAML_INT_TAG, YAML_FLOAT_TAG, YAML_TIMESTAMP_TAG)
    resolvers = {
        first_char: [(tag, regexp) for tag, regexp in entries if tag not in replaced]
        for first_char, entries in yaml.SafeLoader.yaml_implicit_resolvers.items()
    }
    for tag, pattern, first_chars in YAML12_RESOLVERS:
        regexp = re.compile(pattern)
        for first_char in first_chars:
            resolvers.setdefault(first_char, []).append((tag, regexp))
    return resolvers


class LocaleYamlLoader(yaml.SafeLoader):
    """
    SafeLoader that resolves plain scalars the YAML 1.2 way.

    PyYAML follows YAML 1.1, where unquoted ``On``, ``No`` or ``Yes`` become
    booleans, ``10:00`` becomes the base 60 number 600 and ``2020-01-01``
    becomes a date. Locale files use such words as keys and values, so they
    stay strings here. Duplicate keys in a mapping are an error.
    """

    yaml_implicit_resolvers = _yaml12_implicit_resolvers()

    def construct_mapping(self, node, deep=False):
        if isinstance(node, yaml.MappingNode):
            seen = set()
            for key_node, _ in node.value:
                if key_node.tag == YAML_MERGE_TAG:
                    continue
                key = self.construct_object(key_node, deep=deep)
                try:
                    duplicate = key in seen
                    seen.add(key)
                except TypeError:
                    # Unhashable keys are reported by SafeConstructor
                    continue
                if duplicate:
                    raise ConstructorError(
                        "while constructing a mapping", node.start_mark,
                        f"found duplicate key '{key}'", key_node.start_mark
                    )
        return super().construct_mapping(node, deep=deep)


class LocaleYamlDumper(yaml.SafeDumper):
    """
    SafeDumper that never emits anchors or aliases.

    It shares the loader's scalar rules, so a string is quoted exactly when
    LocaleYamlLoader would otherwise read it back as another type.
    """

    yaml_implicit_resolvers = LocaleYamlLoader.yaml_implicit_resolvers

    def ignore_aliases(self, data):
        return True


def _preview(text: str) -> str:
    if len(text) <= ERROR_PREVIEW_LENGTH:
        return text
    return text[:ERROR_PREVIEW_LENGTH] + '...'


def _ensure_text(value: str) -> str:
    try:
        value.encode('utf-8')
    except UnicodeEncodeError as exc:
        raise EncodingError(MALFORMED_UTF8_MESSAGE) from exc
    return value


def _normalise(node: Any) -> Any:
    """
    Return a copy of ``node`` containing only values both formats can write.

    ``bytes`` holding valid UTF-8 become ``str`` and tuples become lists.
    Strings with lone surrogates (undecodable bytes smuggled in through
    ``surrogateescape``) and invalid ``bytes`` raise ``EncodingError``.
    """
    if isinstance(node, dict):
        return {_normalise(key): _normalise(value) for key, value in node.items()}
    if isinstance(node, (list, tuple)):
        return [_normalise(item) for item in node]
    if isinstance(node, str):
        return _ensure_text(node)
    if isinstance(node, (bytes, bytearray)):
        try:
            return bytes(node).decode('utf-8')
        except UnicodeDecodeError as exc:
            raise EncodingError(MALFORMED_UTF8_MESSAGE) from exc
    if node is None or isinstance(node, (bool, int, float)):
        return node
    raise EncodingError(f"Values of type '{type(node).__name__}' cannot be encoded")


def json_encode(tree: Any) -> str:
    """
    Encode ``tree`` as pretty-printed JSON.

    Unicode and forward slashes are written unescaped and entries are indented
    by four spaces. There is no trailing newline.

    Raises:
        EncodingError: ``tree`` holds malformed UTF-8 text or a value JSON
            cannot represent.
    """
    data = _normalise(tree)
    try:
        return json.dumps(data, indent=JSON_INDENT, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise EncodingError(str(exc)) from exc


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Invalid JSON constant {name}")


def json_decode(text: str) -> Dict[str, Any]:
    """
    Decode a JSON object, raising ``DecodingError`` for anything else.

    ``NaN``, ``Infinity`` and ``-Infinity`` are rejected; they are not JSON and
    ``json_encode`` could not write them back.
    """
    try:
        data = json.loads(text, parse_constant=_reject_constant)
    except ValueError as exc:
        raise DecodingError(_preview(text), str(exc), 'json') from exc
    if not isinstance(data, dict):
        raise DecodingError(_preview(text), f"Expected a JSON object, got {type(data).__name__}", 'json')
    return data


def yaml_encode(tree: Any) -> str:
    """
    Encode ``tree`` as block-style YAML.

    Every level is written in block style with two-space indentation, long
    strings are never folded and key order is kept as given.

    Raises:
        EncodingError: ``tree`` holds malformed UTF-8 text or an unsupported value.
    """
    data = _normalise(tree)
    try:
        return yaml.dump(
            data,
            Dumper=LocaleYamlDumper,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
            indent=YAML_INDENT,
            width=float('inf')
        )
    except yaml.YAMLError as exc:
        raise EncodingError(str(exc)) from exc


def yaml_decode(text: str) -> Dict[str, Any]:
    """Decode a YAML mapping. An empty document decodes to an empty dict."""
    try:
        data = yaml.load(text, Loader=LocaleYamlLoader)
    except yaml.YAMLError as exc:
        raise DecodingError(_preview(text), str(exc), 'yaml') from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise DecodingError(_preview(text), f"Expected a YAML mapping, got {type(data).__name__}", 'yaml')
    return data


class TextFormat(NamedTuple):
    name: str
    encode: Callable[[Any], str]
    decode: Callable[[str], Dict[str, Any]]


JSON_FORMAT = TextFormat('json', json_encode, json_decode)
YAML_FORMAT = TextFormat('yaml', yaml_encode, yaml_decode)

FORMATS_BY_SUFFIX = {
    '.json': JSON_FORMAT,
    '.yml': YAML_FORMAT,
    '.yaml': YAML_FORMAT,
}


def format_for_path(path: str) -> TextFormat:
    """Pick the text format of a locale file from its suffix."""
    suffix = os.path.splitext(path)[1].lower()
    try:
        return FORMATS_BY_SUFFIX[suffix]
    except KeyError:
        raise ValueError(f"Unsupported locale file type '{suffix}' for '{path}'") from None


def read_tree(path: str) -> Dict[str, Any]:
    """
    Read and decode the locale file at ``path``.

    Raises:
        DecodingError: The file is not valid UTF-8 or not valid in its format.
            The error names ``path``.
    """
    text_format = format_for_path(path)
    with open(path, 'rb') as f:
        raw = f.read()
    try:
        text = raw.decode('utf-8')
    except UnicodeDecodeError as exc:
        preview = _preview(raw.decode('utf-8', errors='replace'))
        raise DecodingError(preview, str(exc), text_format.name, path) from exc
    try:
        return text_format.decode(text)
    except DecodingError as exc:
        raise exc.with_path(path) from exc


def encode_tree(path: str, tree: Any) -> str:
    """Encode ``tree`` in the format of ``path``; errors name the path."""
    text_format = format_for_path(path)
    try:
        return text_format.encode(tree)
    except EncodingError as exc:
        raise exc.with_path(path) from exc


def write_text(path: str, content: str) -> None:
    with open(path, 'w', encoding='utf-8', newline='\n') as f:
        f.write(content)
