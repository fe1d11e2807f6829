"""Describes a translatable module through its Transifex configuration."""
import glob
import logging
import os
import re
import time
from dataclasses import dataclass, field
from typing import List, Optional

from src.logging_config import LOGGER_NAME
from src.structured_text import read_tree

logger = logging.getLogger(LOGGER_NAME)

TX_CONFIG_RELATIVE_PATH = os.path.join('.tx', 'config')

_SOURCE_FILE_REGEX = re.compile(r'source_file\s*=\s*(?P<path>\S+)')
_YML_SOURCE_REGEX = re.compile(r'^(?P<dir>.+)/(?P<file>[^/]+)\.yml$')
_JS_SOURCE_REGEX = re.compile(r'^(?P<dir>.+)/src/(?P<file>[^/]+)\.js(on)?$')

# Locale files are backdated by this much so the service treats local copies as obsolete.
STALE_AGE_SECONDS = 365 * 24 * 60 * 60


def read_transifex_sources(module_path: str) -> List[str]:
    """
    Get the list of Transifex source files of a module, e.g. ``lang/en.yml``.

    Args:
        module_path: The absolute path to the module.

    Returns:
        The ``source_file`` entries of ``.tx/config`` in file order.
    """
    config_path = os.path.join(module_path, TX_CONFIG_RELATIVE_PATH)
    with open(config_path, 'r', encoding='utf-8') as f:
        content = f.read()
    sources = []
    for line in content.splitlines():
        match = _SOURCE_FILE_REGEX.search(line)
        if match:
            sources.append(match.group('path'))
    return sources


def read_module_name(module_path: str) -> str:
    """Read the composer package name, falling back to the directory name."""
    composer_path = os.path.join(module_path, 'composer.json')
    if os.path.exists(composer_path):
        name = read_tree(composer_path).get('name')
        if name:
            return name
    return os.path.basename(os.path.normpath(module_path))


@dataclass
class TxModule:
    """A module with its YAML lang directory and its JavaScript lang directories."""
    path: str
    name: str
    yml_lang_dir: Optional[str] = None
    js_lang_dirs: List[str] = field(default_factory=list)

    @classmethod
    def from_path(cls, module_path: str) -> 'TxModule':
        module_path = os.path.abspath(module_path)
        yml_lang_dir = None
        js_lang_dirs = []
        for source in read_transifex_sources(module_path):
            js_match = _JS_SOURCE_REGEX.match(source)
            if js_match:
                js_lang_dirs.append(os.path.join(module_path, js_match.group('dir')))
                continue
            yml_match = _YML_SOURCE_REGEX.match(source)
            if yml_match and yml_lang_dir is None:
                yml_lang_dir = os.path.join(module_path, yml_match.group('dir'))
        return cls(
            path=module_path,
            name=read_module_name(module_path),
            yml_lang_dir=yml_lang_dir,
            js_lang_dirs=js_lang_dirs
        )

    @property
    def tx_config_path(self) -> str:
        return os.path.join(self.path, TX_CONFIG_RELATIVE_PATH)

    def yml_files(self) -> List[str]:
        if not self.yml_lang_dir:
            return []
        return sorted(glob.glob(os.path.join(self.yml_lang_dir, '*.yml')))

    def json_files(self) -> List[str]:
        files = []
        for js_lang_dir in self.js_lang_dirs:
            files.extend(glob.glob(os.path.join(js_lang_dir, 'src', '*.json')))
        return sorted(files)

    def locale_files(self) -> List[str]:
        """All locale files the reconciliation tracks, as currently on disk."""
        return self.yml_files() + self.json_files()

    def lang_dirs(self) -> List[str]:
        dirs = [self.yml_lang_dir] if self.yml_lang_dir else []
        return dirs + list(self.js_lang_dirs)


def mark_locale_files_stale(module: TxModule, now: Optional[float] = None) -> int:
    """
    Set the modification time of the module's locale files to a year ago.

    Transifex compares timestamps when pulling; old local files are always
    replaced by the remote translations.

    Returns:
        The number of touched files.
    """
    past = (now if now is not None else time.time()) - STALE_AGE_SECONDS
    paths = list(module.yml_files())
    for js_lang_dir in module.js_lang_dirs:
        for root, _, filenames in os.walk(js_lang_dir):
            paths.extend(os.path.join(root, name) for name in filenames if '.json' in name)
    for path in paths:
        os.utime(path, (past, past))
    logger.info("Set file mtime to a past date for %d file(s) of %s", len(paths), module.name)
    return len(paths)


def resolve_modules(module_paths: List[str]) -> List[TxModule]:
    """Build a TxModule for every path that has a Transifex configuration."""
    modules = []
    for module_path in module_paths:
        if not os.path.exists(os.path.join(module_path, TX_CONFIG_RELATIVE_PATH)):
            logger.warning("Skipping '%s': no %s found.", module_path, TX_CONFIG_RELATIVE_PATH)
            continue
        modules.append(TxModule.from_path(module_path))
    return modules
