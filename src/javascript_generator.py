"""Generates the ``<lang>/<locale>.js`` dictionaries from ``<lang>/src/<locale>.json``."""
import glob
import logging
import os

from src.locale_tree import sort_keys
from src.logging_config import LOGGER_NAME
from src.structured_text import json_encode, read_tree, write_text
from src.tx_module import TxModule

logger = logging.getLogger(LOGGER_NAME)

GENERATOR_NAME = 'silverstripe/tx-translator'
GENERATOR_URL = 'https://github.com/silverstripe/silverstripe-tx-translator'

JAVASCRIPT_TEMPLATE = """\
// This file was generated by {generator} from {source}.
// See {url} for details
if (typeof(ss) === 'undefined' || typeof(ss.i18n) === 'undefined') {{
  if (typeof(console) !== 'undefined') {{ // eslint-disable-line no-console
    console.error('Class ss.i18n not defined');  // eslint-disable-line no-console
  }}
}} else {{
  ss.i18n.addDictionary('{locale}', {dictionary});
}}"""


def render_javascript(locale: str, relative_source: str, dictionary: dict) -> str:
    """
    Render the script file registering ``dictionary`` for ``locale``.

    The dictionary is key-sorted and re-encoded, so the same input always gives
    the same bytes.
    """
    return JAVASCRIPT_TEMPLATE.format(
        generator=GENERATOR_NAME,
        source=relative_source,
        url=GENERATOR_URL,
        locale=locale,
        dictionary=json_encode(sort_keys(dictionary))
    )


def generate_javascript_in_directory(module_path: str, js_lang_dir: str) -> int:
    count = 0
    for source_file in sorted(glob.glob(os.path.join(js_lang_dir, 'src', '*.json'))):
        locale = os.path.splitext(os.path.basename(source_file))[0]
        target_file = os.path.join(js_lang_dir, f"{locale}.js")
        relative_source = os.path.relpath(source_file, module_path).replace(os.sep, '/')
        logger.debug("Generating file %s", target_file)
        write_text(target_file, render_javascript(locale, relative_source, read_tree(source_file)))
        count += 1
    return count


def generate_javascript(module: TxModule) -> int:
    """
    Generate the script locale files of every JavaScript lang directory of ``module``.

    Returns:
        The number of generated files.
    """
    count = 0
    for js_lang_dir in module.js_lang_dirs:
        count += generate_javascript_in_directory(module.path, js_lang_dir)
    logger.info("Generated %d javascript locale file(s) for %s", count, module.name)
    return count
