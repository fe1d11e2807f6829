"""Integration tests for the translate_modules orchestration."""
import os
from unittest.mock import MagicMock, patch

import pytest

from src.app_config import AppConfig
from src.errors import ExternalProcessError
from src.translate_modules import main, run


def _config(module_paths, **overrides):
    values = dict(
        project_root="/project",
        site_url="http://localhost",
        github_token="ghp_test",
        do_pull_and_update=True,
        do_push=False,
        dev_mode=False,
        verbose_logging=False,
        module_paths=module_paths,
        minimum_perc=10,
        reference_locale="en",
        external_timeout_seconds=30,
        pull_request_title="ENH Update translations",
        pull_request_body="Automated",
        fork_account="creative-commoners",
        fork_remote="tx-ccs"
    )
    values.update(overrides)
    return AppConfig(**values)


@pytest.fixture
def collaborators():
    with patch('src.translate_modules.TransifexClient') as mock_client_class, \
            patch('src.translate_modules.run_text_collector') as mock_collector, \
            patch('src.translate_modules.GitPublisher') as mock_publisher_class:
        mock_publisher_class.return_value.publish.return_value = 'https://github.com/silverstripe/silverstripe-admin/pull/1'
        yield mock_client_class.return_value, mock_collector, mock_publisher_class.return_value


def test_run_pulls_collects_generates_and_publishes(module_dir, collaborators):
    tx_client, mock_collector, publisher = collaborators

    urls = run(_config([module_dir]))

    assert urls == ['https://github.com/silverstripe/silverstripe-admin/pull/1']
    tx_client.check_installed.assert_called_once()
    tx_client.migrate_config.assert_called_once_with(module_dir)
    tx_client.pull.assert_called_once_with(module_dir, 10)
    tx_client.push.assert_not_called()
    mock_collector.assert_called_once_with('http://localhost', ['silverstripe/admin'], 30)
    publisher.check_branch.assert_called_once()
    publisher.publish.assert_called_once()

    assert os.path.exists(os.path.join(module_dir, 'client', 'lang', 'de.js'))
    assert os.path.exists(os.path.join(module_dir, 'client', 'lang', 'en.js'))


def test_run_push_only(module_dir, collaborators):
    tx_client, mock_collector, publisher = collaborators

    run(_config([module_dir], do_pull_and_update=False, do_push=True))

    tx_client.pull.assert_not_called()
    mock_collector.assert_not_called()
    tx_client.push.assert_called_once_with(module_dir)


def test_dev_mode_does_not_push_sources(module_dir, collaborators):
    tx_client, _, publisher = collaborators
    publisher.publish.return_value = None

    urls = run(_config([module_dir], do_push=True, dev_mode=True))

    assert urls == []
    tx_client.push.assert_not_called()


def test_modules_without_tx_config_are_skipped(tmp_path, collaborators):
    tx_client, mock_collector, publisher = collaborators

    assert run(_config([str(tmp_path)])) == []
    tx_client.pull.assert_not_called()
    publisher.publish.assert_not_called()


def test_branch_check_runs_before_any_pull(module_dir, collaborators):
    tx_client, _, publisher = collaborators
    publisher.check_branch.side_effect = ExternalProcessError(['git', 'rev-parse'], 'not a git repository')

    with pytest.raises(ExternalProcessError):
        run(_config([module_dir]))
    tx_client.pull.assert_not_called()


@patch('src.translate_modules.run')
@patch('src.translate_modules.load_app_config')
def test_main_returns_1_on_failure(mock_load, mock_run):
    mock_load.return_value = MagicMock()
    mock_run.side_effect = ExternalProcessError(['tx', 'pull'], 'failed', returncode=1)
    assert main() == 1


@patch('src.translate_modules.run', return_value=[])
@patch('src.translate_modules.load_app_config')
def test_main_returns_0_on_success(mock_load, mock_run):
    assert main() == 0
    mock_run.assert_called_once_with(mock_load.return_value)
