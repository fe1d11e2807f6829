import json
import unittest
from unittest.mock import MagicMock, patch

from src.errors import ExternalProcessError, ModuleResolutionError
from src.git_publisher import GitPublisher, is_release_branch, parse_github_remote
from src.tx_module import TxModule


class FakeGit:
    """Answers git commands the way a module checkout on branch 5.1 would."""

    def __init__(self, staged='lang/fr.yml', remotes='origin'):
        self.staged = staged
        self.remotes = remotes
        self.commands = []

    def __call__(self, args, cwd=None, timeout=None):
        self.commands.append(args[1:])
        sub_command = args[1]
        if sub_command == 'config':
            return 'git@github.com:silverstripe/silverstripe-admin.git'
        if sub_command == 'remote' and len(args) == 2:
            return self.remotes
        if sub_command == 'rev-parse':
            return '5.1'
        if sub_command == 'diff':
            return self.staged
        return ''


def _module():
    return TxModule(
        path='/vendor/silverstripe/admin',
        name='silverstripe/admin',
        yml_lang_dir='/vendor/silverstripe/admin/lang',
        js_lang_dirs=['/vendor/silverstripe/admin/client/lang']
    )


class TestHelpers(unittest.TestCase):

    def test_parse_github_remote(self):
        self.assertEqual(
            parse_github_remote('git@github.com:silverstripe/silverstripe-admin.git'),
            ('silverstripe', 'silverstripe-admin')
        )
        self.assertEqual(
            parse_github_remote('https://github.com/silverstripe/silverstripe-admin'),
            ('silverstripe', 'silverstripe-admin')
        )
        with self.assertRaises(ModuleResolutionError):
            parse_github_remote('https://gitlab.com/silverstripe/silverstripe-admin.git')

    def test_is_release_branch(self):
        self.assertTrue(is_release_branch('5'))
        self.assertTrue(is_release_branch('5.1'))
        self.assertFalse(is_release_branch('main'))
        self.assertFalse(is_release_branch('pulls/5.1/tx-1700000000'))


@patch('src.git_publisher.os.path.isdir', return_value=True)
class TestPublish(unittest.TestCase):

    def _publisher(self, **kwargs):
        return GitPublisher(github_token='secret', clock=lambda: 1700000000, **kwargs)

    @patch('src.git_publisher.requests.post')
    def test_publish_creates_branch_commit_and_pull_request(self, mock_post, mock_isdir):
        fake_git = FakeGit()
        mock_post.return_value = MagicMock(status_code=201)
        mock_post.return_value.json.return_value = {'html_url': 'https://github.com/silverstripe/silverstripe-admin/pull/1'}

        with patch('src.git_publisher.run_command', side_effect=fake_git):
            url = self._publisher().publish(_module())

        self.assertEqual(url, 'https://github.com/silverstripe/silverstripe-admin/pull/1')
        self.assertIn(['remote', 'add', 'tx-ccs', 'git@github.com:creative-commoners/silverstripe-admin.git'],
                      fake_git.commands)
        self.assertIn(['add', '--', 'lang'], fake_git.commands)
        self.assertIn(['add', '--', 'client/lang'], fake_git.commands)
        self.assertIn(['checkout', '-b', 'pulls/5.1/tx-1700000000'], fake_git.commands)
        self.assertIn(['commit', '-m', 'ENH Update translations'], fake_git.commands)
        self.assertIn(['push', '--set-upstream', 'tx-ccs', 'pulls/5.1/tx-1700000000'], fake_git.commands)

        endpoint = mock_post.call_args.args[0]
        self.assertEqual(endpoint, 'https://api.github.com/repos/silverstripe/silverstripe-admin/pulls')
        payload = json.loads(mock_post.call_args.kwargs['data'])
        self.assertEqual(payload['head'], 'creative-commoners:pulls/5.1/tx-1700000000')
        self.assertEqual(payload['base'], '5.1')
        self.assertEqual(mock_post.call_args.kwargs['headers']['Authorization'], 'token secret')

    @patch('src.git_publisher.requests.post')
    def test_nothing_to_commit(self, mock_post, mock_isdir):
        fake_git = FakeGit(staged='', remotes='origin\ntx-ccs')
        with patch('src.git_publisher.run_command', side_effect=fake_git):
            self.assertIsNone(self._publisher().publish(_module()))
        self.assertFalse(any(command[0] in ('checkout', 'commit', 'push') for command in fake_git.commands))
        self.assertFalse(any(command[:2] == ['remote', 'add'] for command in fake_git.commands))
        mock_post.assert_not_called()

    @patch('src.git_publisher.requests.post')
    def test_dev_mode_commits_without_pushing(self, mock_post, mock_isdir):
        fake_git = FakeGit()
        with patch('src.git_publisher.run_command', side_effect=fake_git):
            self.assertIsNone(self._publisher(dev_mode=True).publish(_module()))
        self.assertIn(['commit', '-m', 'ENH Update translations'], fake_git.commands)
        self.assertFalse(any(command[0] == 'push' for command in fake_git.commands))
        mock_post.assert_not_called()

    @patch('src.git_publisher.requests.post')
    def test_failed_pull_request_raises(self, mock_post, mock_isdir):
        mock_post.return_value = MagicMock(status_code=422, text='{"message": "Validation Failed"}')
        with patch('src.git_publisher.run_command', side_effect=FakeGit()):
            with self.assertRaises(ExternalProcessError) as ctx:
                self._publisher().publish(_module())
        self.assertIn('status code was 422', str(ctx.exception))
        self.assertIn('Validation Failed', str(ctx.exception))

    def test_check_branch_rejects_non_release_branch(self, mock_isdir):
        with patch('src.git_publisher.run_command', return_value='main'):
            with self.assertRaises(ModuleResolutionError):
                self._publisher().check_branch(_module())
