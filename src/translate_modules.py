"""
Updates the translations of a set of modules and opens pull requests with the results.

Steps, in order:
1. Pull translations from Transifex and reconcile them with the local locale files.
2. Run the site's text collector to refresh the source locale files.
3. Regenerate the JavaScript locale files.
4. Optionally push the source files back to Transifex.
5. Commit the changes and open a pull request per module.
"""
import logging
import sys
from typing import List

from tqdm import tqdm

from src.app_config import AppConfig, load_app_config
from src.errors import TranslatorError
from src.external_tools import TransifexClient, run_text_collector
from src.git_publisher import GitPublisher
from src.javascript_generator import generate_javascript
from src.logging_config import LOGGER_NAME
from src.reconciliation import ReconciliationPipeline
from src.tx_module import TxModule, mark_locale_files_stale, resolve_modules

logger = logging.getLogger(LOGGER_NAME)


def build_publisher(config: AppConfig) -> GitPublisher:
    return GitPublisher(
        github_token=config.github_token,
        dev_mode=config.dev_mode,
        title=config.pull_request_title,
        body=config.pull_request_body,
        fork_account=config.fork_account,
        fork_remote=config.fork_remote,
        timeout=config.external_timeout_seconds
    )


def pull_and_update(config: AppConfig, modules: List[TxModule], tx_client: TransifexClient) -> None:
    """Reconcile every module around a Transifex pull, then collect strings and regenerate javascript."""
    logger.info("Updating translations for %d module(s)", len(modules))
    pipeline = ReconciliationPipeline(reference_locale=config.reference_locale)

    def pull(module: TxModule) -> None:
        mark_locale_files_stale(module)
        tx_client.migrate_config(module.path)
        tx_client.pull(module.path, config.minimum_perc)

    for module in tqdm(modules, desc="Reconciling modules", unit="module"):
        pipeline.run(module, pull)

    run_text_collector(config.site_url, [module.name for module in modules], config.external_timeout_seconds)

    count = sum(generate_javascript(module) for module in modules)
    logger.info("Finished generating %d javascript file(s)", count)


def push_sources(config: AppConfig, modules: List[TxModule], tx_client: TransifexClient) -> None:
    logger.info("Pushing updated sources to transifex")
    if config.dev_mode:
        logger.info("Not pushing to transifex because TX_DEV_MODE is enabled")
        return
    for module in modules:
        tx_client.push(module.path)


def run(config: AppConfig) -> List[str]:
    """
    Run the whole update for the configured modules.

    Returns:
        The URLs of the created pull requests.

    Raises:
        TranslatorError: A step failed. The run stops at the failing module.
    """
    tx_client = TransifexClient(timeout=config.external_timeout_seconds)
    tx_client.check_installed()

    modules = resolve_modules(config.module_paths)
    if not modules:
        logger.warning("No modules with a .tx/config were found. Nothing to do.")
        return []

    publisher = build_publisher(config)
    for module in modules:
        publisher.check_branch(module)

    if config.do_pull_and_update:
        pull_and_update(config, modules, tx_client)
    if config.do_push:
        push_sources(config, modules, tx_client)

    logger.info("Committing translations to git")
    pull_request_urls = []
    for module in modules:
        url = publisher.publish(module)
        if url:
            pull_request_urls.append(url)

    logger.info("The following pull-requests were created:")
    for url in pull_request_urls:
        logger.info(url)
    return pull_request_urls


def main() -> int:
    config = load_app_config()
    try:
        run(config)
    except TranslatorError as exc:
        logger.critical("Translation update failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
