"""Commits reconciled translations and opens a pull request on GitHub."""
import json
import logging
import os
import re
import time
from typing import Callable, List, Optional, Tuple

import requests

from src.errors import ExternalProcessError, ModuleResolutionError
from src.external_tools import DEFAULT_TIMEOUT_SECONDS, run_command
from src.logging_config import LOGGER_NAME
from src.tx_module import TX_CONFIG_RELATIVE_PATH, TxModule

logger = logging.getLogger(LOGGER_NAME)

DEFAULT_PULL_REQUEST_TITLE = 'ENH Update translations'
DEFAULT_PULL_REQUEST_BODY = (
    'Automated translations update generated using '
    '[silverstripe/tx-translator](https://github.com/silverstripe/silverstripe-tx-translator)'
)
DEFAULT_FORK_ACCOUNT = 'creative-commoners'
DEFAULT_FORK_REMOTE = 'tx-ccs'

GITHUB_API_URL = 'https://api.github.com'

_GITHUB_REMOTE_REGEX = re.compile(r'^(https://github\.com/|git@github\.com:)([^/]+)/(.+?)(\.git)?$')
_RELEASE_BRANCH_REGEX = re.compile(r'^\d+(\.\d+)?$')


def parse_github_remote(remote_url: str) -> Tuple[str, str]:
    """
    Split a GitHub remote URL into account and repository name.

    Raises:
        ModuleResolutionError: The remote is not a GitHub repository.
    """
    match = _GITHUB_REMOTE_REGEX.match(remote_url.strip())
    if not match:
        raise ModuleResolutionError(f"Invalid git remote {remote_url}")
    return match.group(2), match.group(3)


def is_release_branch(branch: str) -> bool:
    """Translations are only updated on minor branches such as ``5.1`` or next-minor branches such as ``5``."""
    return bool(_RELEASE_BRANCH_REGEX.match(branch))


class GitPublisher:
    """
    Commits the locale files of a module to a new branch and opens a pull request.

    In dev mode the branch and commit are created locally but nothing is pushed.
    """

    def __init__(
            self,
            github_token: str,
            dev_mode: bool = False,
            title: str = DEFAULT_PULL_REQUEST_TITLE,
            body: str = DEFAULT_PULL_REQUEST_BODY,
            fork_account: str = DEFAULT_FORK_ACCOUNT,
            fork_remote: str = DEFAULT_FORK_REMOTE,
            timeout: float = DEFAULT_TIMEOUT_SECONDS,
            clock: Callable[[], float] = time.time
    ):
        self.github_token = github_token
        self.dev_mode = dev_mode
        self.title = title
        self.body = body
        self.fork_account = fork_account
        self.fork_remote = fork_remote
        self.timeout = timeout
        self.clock = clock

    def git(self, module: TxModule, *args: str) -> str:
        return run_command(['git', *args], cwd=module.path, timeout=self.timeout)

    def current_branch(self, module: TxModule) -> str:
        return self.git(module, 'rev-parse', '--abbrev-ref', 'HEAD')

    def check_branch(self, module: TxModule) -> str:
        """
        Raises:
            ModuleResolutionError: The module is not on a release branch.
        """
        branch = self.current_branch(module)
        if not is_release_branch(branch):
            raise ModuleResolutionError(
                f"Branch {branch} in {module.path} is not a minor or next-minor branch"
            )
        return branch

    def stage_translations(self, module: TxModule) -> List[str]:
        """Stage the lang directories and the Transifex config; return the staged file names."""
        for lang_dir in module.lang_dirs():
            if os.path.isdir(lang_dir):
                self.git(module, 'add', '--', os.path.relpath(lang_dir, module.path))
        self.git(module, 'add', '--', TX_CONFIG_RELATIVE_PATH)
        staged = self.git(module, 'diff', '--cached', '--name-only')
        return [line for line in staged.splitlines() if line.strip()]

    def create_pull_request(self, account: str, repo: str, branch: str, base: str) -> str:
        endpoint = f"{GITHUB_API_URL}/repos/{account}/{repo}/pulls"
        payload = {
            "title": self.title,
            "body": self.body,
            "head": f"{self.fork_account}:{branch}",
            "base": base
        }
        try:
            response = requests.post(
                endpoint,
                headers={
                    "Accept": "application/vnd.github.v3+json",
                    "Authorization": f"token {self.github_token}"
                },
                data=json.dumps(payload),
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as exc:
            raise ExternalProcessError(['POST', endpoint], str(exc)) from exc
        if response.status_code != 201:
            raise ExternalProcessError(
                ['POST', endpoint],
                f"Pull request failed - status code was {response.status_code}",
                output=response.text
            )
        return response.json()['html_url']

    def publish(self, module: TxModule) -> Optional[str]:
        """
        Commit the translation changes of ``module`` and open a pull request.

        Returns:
            The pull request URL, or None when there was nothing to commit or
            dev mode is on.
        """
        logger.info("Committing translations for %s", module.path)
        account, repo = parse_github_remote(self.git(module, 'config', '--get', 'remote.origin.url'))

        remotes = self.git(module, 'remote').splitlines()
        if self.fork_remote not in remotes:
            self.git(module, 'remote', 'add', self.fork_remote, f"git@github.com:{self.fork_account}/{repo}.git")

        if not self.stage_translations(module):
            logger.info("Nothing to commit for %s, continuing", module.name)
            return None

        base_branch = self.current_branch(module)
        branch = f"pulls/{base_branch}/tx-{int(self.clock())}"
        self.git(module, 'checkout', '-b', branch)
        self.git(module, 'commit', '-m', self.title)

        if self.dev_mode:
            logger.info(
                "Not pushing changes or creating pull-request for %s because TX_DEV_MODE is enabled. "
                "Branch %s was created.", module.name, branch
            )
            return None

        self.git(module, 'push', '--set-upstream', self.fork_remote, branch)
        pull_request_url = self.create_pull_request(account, repo, branch, base_branch)
        logger.info("Pull request was successfully created at %s", pull_request_url)
        return pull_request_url
