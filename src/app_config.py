"""Application configuration module for the translator."""
import logging
import os
import sys
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import jsonschema
import yaml
from dotenv import load_dotenv

from src.external_tools import DEFAULT_TIMEOUT_SECONDS
from src.git_publisher import (
    DEFAULT_FORK_ACCOUNT,
    DEFAULT_FORK_REMOTE,
    DEFAULT_PULL_REQUEST_BODY,
    DEFAULT_PULL_REQUEST_TITLE
)
from src.logging_config import setup_logger
from src.reconciliation import DEFAULT_REFERENCE_LOCALE

DEFAULT_MINIMUM_PERC = 10

TRUE_VALUES = ('on', 'true', '1')
FALSE_VALUES = ('off', 'false', '0')

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "module_paths": {"type": "array", "items": {"type": "string"}},
        "minimum_perc": {"type": "integer", "minimum": 0, "maximum": 100},
        "reference_locale": {"type": "string", "minLength": 1},
        "external_timeout_seconds": {"type": "number", "exclusiveMinimum": 0},
        "pull_request": {
            "type": "object",
            "properties": {
                "title": {"type": "string"},
                "body": {"type": "string"},
                "fork_account": {"type": "string"},
                "fork_remote": {"type": "string"}
            },
            "additionalProperties": False
        },
        "logging": {
            "type": "object",
            "properties": {
                "log_level": {"type": "string"},
                "log_file_path": {"type": "string"},
                "log_to_console": {"type": "boolean"}
            }
        }
    }
}


@dataclass
class AppConfig:
    """Application configuration dataclass."""
    project_root: str

    # Environment
    site_url: str
    github_token: str
    do_pull_and_update: bool
    do_push: bool
    dev_mode: bool
    verbose_logging: bool

    # Modules
    module_paths: List[str]
    minimum_perc: int
    reference_locale: str
    external_timeout_seconds: float

    # Pull requests
    pull_request_title: str
    pull_request_body: str
    fork_account: str
    fork_remote: str


def _compute_project_root() -> str:
    """The checkout directory, one level above ``src``."""
    return os.path.dirname(os.path.dirname(os.path.realpath(__file__)))


def _find_dotenv_file(project_root: str) -> Optional[str]:
    """The first of ``.env`` and ``docker/.env`` that exists under ``project_root``."""
    for candidate in (os.path.join(project_root, '.env'), os.path.join(project_root, 'docker', '.env')):
        if os.path.exists(candidate):
            return candidate
    return None


def _config_file_path(project_root: str) -> str:
    # TRANSLATOR_CONFIG_FILE may come from the .env file, so this runs after load_dotenv
    config_file = os.environ.get('TRANSLATOR_CONFIG_FILE') or os.path.join(project_root, 'config.yaml')
    return os.path.abspath(config_file)


def _warn(message: str) -> None:
    # The logger is configured from this file, so problems with it go to stderr
    print(message, file=sys.stderr)


def _load_yaml_config(config_file: str) -> Dict[str, Any]:
    """
    Read and validate the YAML configuration file.

    A missing, unreadable, malformed or invalid file is reported on stderr and
    an empty configuration is returned, so every setting takes its default.
    """
    if not os.path.exists(config_file):
        _warn(f"Warning: No configuration file at '{config_file}'; using defaults. "
              f"Copy config.example.yaml or set TRANSLATOR_CONFIG_FILE.")
        return {}

    try:
        with open(config_file, 'r', encoding='utf-8') as config_stream:
            loaded_config = yaml.safe_load(config_stream)
    except yaml.YAMLError as e:
        _warn(f"Error: '{config_file}' is not valid YAML, using defaults: {e}")
        return {}
    except OSError as e:
        _warn(f"Error: Could not read '{config_file}', using defaults: {e}")
        return {}

    if loaded_config is None:
        _warn(f"Warning: '{config_file}' is empty; using defaults.")
        return {}

    try:
        jsonschema.validate(instance=loaded_config, schema=CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        location = '/'.join(str(part) for part in e.absolute_path) or '<root>'
        _warn(f"Error: Invalid value at '{location}' in '{config_file}', using defaults: {e.message}")
        return {}

    _warn(f"Loaded configuration from: {config_file}")
    return loaded_config


def _setup_logger_from_config(config: Dict[str, Any], verbose_logging: bool) -> logging.Logger:
    log_config = config.get('logging', {})
    log_level_str = 'DEBUG' if verbose_logging else log_config.get('log_level', 'INFO')
    return setup_logger(
        log_level_str,
        log_config.get('log_file_path', 'logs/tx_translator.log'),
        log_config.get('log_to_console', True)
    )


def _env_flag(name: str, default: bool) -> bool:
    """Read an on/off environment variable; unknown values fall back to ``default``."""
    value = os.environ.get(name, '').strip().lower()
    if default:
        return value not in FALSE_VALUES
    return value in TRUE_VALUES


def _normalise_site_url(site: str) -> str:
    if not site.startswith(('http://', 'https://')):
        site = 'http://' + site
    return site


def _is_valid_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc) and ' ' not in url


def _read_site_url(logger: logging.Logger) -> str:
    site = os.environ.get('TX_SITE', '').strip()
    if not site:
        logger.critical("CRITICAL: TX_SITE environment variable is not defined.")
        sys.exit(1)
    site = _normalise_site_url(site)
    if not _is_valid_url(site):
        logger.critical("CRITICAL: TX_SITE environment variable is not a valid url: %s", site)
        sys.exit(1)
    return site


def _read_github_token(logger: logging.Logger) -> str:
    token = os.environ.get('TX_GITHUB_API_TOKEN', '').strip()
    if not token:
        logger.critical("CRITICAL: Could not get a valid token from TX_GITHUB_API_TOKEN environment variable.")
        logger.critical("Create a new token with the public_repo checkbox ticked that will allow you to create pull-requests.")
        sys.exit(1)
    return token


def _resolve_module_paths(module_paths: List[str], project_root: str) -> List[str]:
    return [
        path if os.path.isabs(path) else os.path.abspath(os.path.join(project_root, path))
        for path in module_paths
    ]


def load_app_config() -> AppConfig:
    """
    Build the run configuration from the environment and the YAML config file.

    Exits the process when a required environment variable is missing or
    invalid.
    """
    project_root = _compute_project_root()

    dotenv_file = _find_dotenv_file(project_root)
    if dotenv_file:
        load_dotenv(dotenv_file)

    config = _load_yaml_config(_config_file_path(project_root))

    # TX_VERBOSE_LOGGING is read before the logger exists because it sets the level
    verbose_logging = _env_flag('TX_VERBOSE_LOGGING', default=False)
    logger = _setup_logger_from_config(config, verbose_logging)

    if dotenv_file:
        logger.info("Loaded environment variables from: %s", dotenv_file)
    else:
        logger.info("No .env file found under '%s'; using the process environment.", project_root)

    site_url = _read_site_url(logger)
    github_token = _read_github_token(logger)

    # Pull is on unless TX_PULL is off; push is off unless TX_PUSH is on
    do_pull_and_update = _env_flag('TX_PULL', default=True)
    do_push = _env_flag('TX_PUSH', default=False)
    if not do_pull_and_update and not do_push:
        logger.critical("CRITICAL: Either TX_PULL or TX_PUSH must be set to true.")
        sys.exit(1)

    dev_mode = _env_flag('TX_DEV_MODE', default=False)
    if dev_mode:
        logger.info("TX_DEV_MODE is ON (changes will not be pushed)")
    else:
        logger.info("TX_DEV_MODE is OFF (changes will be pushed!)")

    pull_request_config = config.get('pull_request', {})

    return AppConfig(
        project_root=project_root,
        site_url=site_url,
        github_token=github_token,
        do_pull_and_update=do_pull_and_update,
        do_push=do_push,
        dev_mode=dev_mode,
        verbose_logging=verbose_logging,
        module_paths=_resolve_module_paths(config.get('module_paths', []), project_root),
        minimum_perc=config.get('minimum_perc', DEFAULT_MINIMUM_PERC),
        reference_locale=config.get('reference_locale', DEFAULT_REFERENCE_LOCALE),
        external_timeout_seconds=config.get('external_timeout_seconds', DEFAULT_TIMEOUT_SECONDS),
        pull_request_title=pull_request_config.get('title', DEFAULT_PULL_REQUEST_TITLE),
        pull_request_body=pull_request_config.get('body', DEFAULT_PULL_REQUEST_BODY),
        fork_account=pull_request_config.get('fork_account', DEFAULT_FORK_ACCOUNT),
        fork_remote=pull_request_config.get('fork_remote', DEFAULT_FORK_REMOTE)
    )
