"""
Reconciliation of pulled translations with the locally tracked locale files.

A pull from the translation service overwrites the locale files of a module.
Entries that exist locally but not remotely would be lost, and the service
fills untranslated entries with blanks or with the reference text. The
pipeline in this module takes a snapshot of the files before the pull, merges
the snapshot with the pulled content, removes blank and echoed entries, sorts
the keys and writes the files back.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from src.locale_filters import filter_json_dictionary, filter_yaml_locales
from src.locale_tree import deep_merge, sort_keys
from src.logging_config import LOGGER_NAME
from src.structured_text import JSON_FORMAT, encode_tree, format_for_path, read_tree, write_text
from src.tx_module import TxModule

logger = logging.getLogger(LOGGER_NAME)

DEFAULT_REFERENCE_LOCALE = 'en'


@dataclass
class ModuleSnapshot:
    """Decoded locale files of one module, keyed by absolute path, taken before a pull."""
    module_path: str
    files: Dict[str, Dict[str, Any]] = field(default_factory=dict)


@dataclass
class ReconciledModule:
    """Encoded content of every locale file of a module, not yet written."""
    module_name: str
    contents: Dict[str, str]
    restored_paths: List[str] = field(default_factory=list)
    blanks_removed: int = 0
    echoes_removed: int = 0
    written_paths: List[str] = field(default_factory=list)


class ReconciliationPipeline:
    """
    Runs snapshot, pull, merge, filter, sort and persist for one module at a time.

    The pipeline keeps no state between modules; every call works on the
    snapshot it is given or creates.
    """

    def __init__(self, reference_locale: str = DEFAULT_REFERENCE_LOCALE):
        self.reference_locale = reference_locale

    def reference_path_for(self, path: str) -> str:
        """The reference locale file next to ``path``, e.g. ``lang/fr.yml`` -> ``lang/en.yml``."""
        suffix = os.path.splitext(path)[1]
        return os.path.join(os.path.dirname(path), f"{self.reference_locale}{suffix}")

    def take_snapshot(self, module: TxModule) -> ModuleSnapshot:
        """Decode every tracked locale file of ``module`` as it is before the pull."""
        snapshot = ModuleSnapshot(module_path=module.path)
        for path in module.locale_files():
            snapshot.files[path] = read_tree(path)
        logger.info("Backed up %d locale file(s) of %s", len(snapshot.files), module.name)
        return snapshot

    def merge_file(self, path: str, snapshot_tree: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Merge the snapshot of ``path`` with the file as it is after the pull.

        The pulled content wins on conflicts. When the pull removed the file the
        snapshot is kept as it was, so local content is never dropped.
        """
        if snapshot_tree is None:
            return read_tree(path)
        if not os.path.exists(path):
            logger.warning("'%s' was removed by the pull; restoring it from the local copy.", path)
            return deep_merge(snapshot_tree, {})
        return deep_merge(snapshot_tree, read_tree(path))

    def filter_tree(
            self,
            path: str,
            tree: Dict[str, Any],
            reference_tree: Optional[Dict[str, Any]]
    ) -> Tuple[int, int]:
        """Remove blank and echoed entries from ``tree`` in place."""
        if path == self.reference_path_for(path):
            return 0, 0
        if reference_tree is None:
            logger.debug("No reference file for '%s'; leaving its entries untouched.", path)
            return 0, 0
        if format_for_path(path) is JSON_FORMAT:
            return filter_json_dictionary(tree, reference_tree)
        return filter_yaml_locales(tree, reference_tree, self.reference_locale)

    def reconcile(self, module: TxModule, snapshot: ModuleSnapshot) -> ReconciledModule:
        """
        Compute the reconciled content of every locale file of ``module``.

        Covers the files in ``snapshot`` and any file the pull added. Nothing
        is written; ``persist`` writes the result.

        Raises:
            DecodingError: A file could not be decoded.
            EncodingError: A reconciled tree could not be encoded.
        """
        paths = sorted(set(snapshot.files) | set(module.locale_files()))
        restored_paths = [path for path in paths if path in snapshot.files and not os.path.exists(path)]
        merged = {path: self.merge_file(path, snapshot.files.get(path)) for path in paths}

        blanks_removed = 0
        echoes_removed = 0
        for path in paths:
            reference_path = self.reference_path_for(path)
            if reference_path in merged:
                reference_tree = merged[reference_path]
            elif os.path.exists(reference_path):
                reference_tree = read_tree(reference_path)
            else:
                reference_tree = None
            blanks, echoes = self.filter_tree(path, merged[path], reference_tree)
            blanks_removed += blanks
            echoes_removed += echoes

        contents = {path: encode_tree(path, sort_keys(merged[path])) for path in paths}
        return ReconciledModule(
            module_name=module.name,
            contents=contents,
            restored_paths=restored_paths,
            blanks_removed=blanks_removed,
            echoes_removed=echoes_removed
        )

    def persist(self, reconciled: ReconciledModule) -> List[str]:
        """Write the files whose content changed and return their paths."""
        written = []
        for path, content in reconciled.contents.items():
            if os.path.exists(path):
                with open(path, 'r', encoding='utf-8', newline='') as f:
                    if f.read() == content:
                        continue
            write_text(path, content)
            written.append(path)
        reconciled.written_paths = written
        return written

    def run(self, module: TxModule, pull: Callable[[TxModule], None]) -> ReconciledModule:
        """
        Reconcile one module around an external pull.

        Args:
            module: The module to reconcile.
            pull: Called with ``module`` between the snapshot and the merge. It
                overwrites the locale files on disk.

        Raises:
            DecodingError, EncodingError: The module is aborted before any file
                is written.
            ExternalProcessError: Raised by ``pull``.
        """
        snapshot = self.take_snapshot(module)
        pull(module)
        reconciled = self.reconcile(module, snapshot)
        self.persist(reconciled)
        logger.info(
            "Reconciled %d locale file(s) of %s: %d written, %d blank and %d untranslated entries removed",
            len(reconciled.contents), module.name, len(reconciled.written_paths),
            reconciled.blanks_removed, reconciled.echoes_removed
        )
        return reconciled
