"""Thin wrappers around the external tools the translator drives."""
import logging
import os
import re
import shutil
import subprocess
from typing import List, Optional
from urllib.parse import quote

import requests

from src.errors import ExternalProcessError
from src.logging_config import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

# Pulls and the text collector can take several minutes on large modules.
DEFAULT_TIMEOUT_SECONDS = 600

MINIMUM_TX_VERSION = (1, 6)
TX_INSTRUCTIONS = 'Install the new go version of the client https://developers.transifex.com/docs/cli'


def run_command(args: List[str], cwd: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> str:
    """
    Run an external command and return its stripped standard output.

    Raises:
        ExternalProcessError: The command is missing, exits non-zero or does
            not finish within ``timeout`` seconds.
    """
    logger.info("Running %s", ' '.join(args))
    try:
        result = subprocess.run(
            args,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            check=True,
            timeout=timeout
        )
    except FileNotFoundError as exc:
        raise ExternalProcessError(args, f"executable not found: {exc}", cwd=cwd) from exc
    except subprocess.TimeoutExpired as exc:
        raise ExternalProcessError(args, f"timed out after {timeout} seconds", cwd=cwd) from exc
    except subprocess.CalledProcessError as exc:
        output = '\n'.join(part.strip() for part in (exc.stdout, exc.stderr) if part and part.strip())
        raise ExternalProcessError(args, 'command failed', exc.returncode, output, cwd) from exc
    output = result.stdout.strip()
    if output:
        logger.debug(output)
    return output


def parse_tx_version(help_output: str) -> Optional[tuple]:
    """Extract the ``(major, minor)`` version from the output of ``tx help``."""
    compact = re.sub(r'\s', '', help_output)
    match = re.search(r'VERSION:(\d+)\.(\d+)', compact)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


class TransifexClient:
    """Drives the ``tx`` command line client."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.timeout = timeout

    def check_installed(self) -> None:
        if shutil.which('tx') is None:
            raise ExternalProcessError(['tx'], f"Could not find tx executable. {TX_INSTRUCTIONS}")
        version = parse_tx_version(run_command(['tx', 'help'], timeout=self.timeout))
        if version is None or version < MINIMUM_TX_VERSION:
            raise ExternalProcessError(['tx', 'help'], f"Your version of tx is too old. {TX_INSTRUCTIONS}")

    def migrate_config(self, module_path: str) -> bool:
        """
        Migrate ``.tx/config`` to the current format if needed.

        Returns:
            True if ``tx migrate`` was run.
        """
        tx_dir = os.path.join(module_path, '.tx')
        with open(os.path.join(tx_dir, 'config'), 'r', encoding='utf-8') as f:
            if '[o:' in f.read():
                return False
        run_command(['tx', 'migrate'], cwd=module_path, timeout=self.timeout)
        # tx migrate leaves .bak copies of the old configuration behind
        for filename in os.listdir(tx_dir):
            if filename.endswith('.bak'):
                logger.info("Deleting %s", os.path.join(tx_dir, filename))
                os.remove(os.path.join(tx_dir, filename))
        return True

    def pull(self, module_path: str, minimum_perc: int) -> None:
        run_command(
            ['tx', 'pull', '-a', '-s', '-t', '-f', f'--minimum-perc={minimum_perc}'],
            cwd=module_path,
            timeout=self.timeout
        )

    def push(self, module_path: str) -> None:
        run_command(['tx', 'push', '-s'], cwd=module_path, timeout=self.timeout)


def build_text_collector_url(site_url: str, module_names: List[str]) -> str:
    modules = quote(','.join(module_names), safe='')
    return f"{site_url.rstrip('/')}/dev/tasks/i18nTextCollectorTask?flush=all&merge=1&module={modules}"


def run_text_collector(site_url: str, module_names: List[str], timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
    """
    Ask the site to collect the translatable strings of the modules into their source locale files.

    Raises:
        ExternalProcessError: The request failed or returned an error status.
    """
    url = build_text_collector_url(site_url, module_names)
    logger.info("Running i18nTextCollectorTask: %s", url)
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as exc:
        raise ExternalProcessError(['GET', url], str(exc)) from exc
    logger.debug(response.text)
