"""Unit tests for the sync.py and get_token.py command line tools."""

import json
import pytest
from unittest.mock import patch
import get_token
import sync
from discover_sync.sync_service import SyncReport
from discover_sync.utils.config import ConfigError


@pytest.fixture
def report():
    """A finished sync report."""
    report = SyncReport()
    report.tracks_added = 2
    report.finalize()
    return report


class TestSyncCli:
    """Test cases for sync.main."""

    @patch('sync.load_dotenv')
    @patch('sync.SyncService')
    @patch('sync.load_config')
    def test_success_exits_zero(self, mock_load_config, mock_service_class, mock_dotenv, report):
        """Test a successful run."""
        mock_service_class.return_value.run.return_value = report

        with patch('sys.argv', ['sync.py']):
            with pytest.raises(SystemExit) as exc_info:
                sync.main()

        assert exc_info.value.code == 0
        mock_dotenv.assert_called_once_with('.env')
        mock_service_class.return_value.run.assert_called_once_with(dry_run=False)

    @patch('sync.load_dotenv')
    @patch('sync.SyncService')
    @patch('sync.load_config')
    def test_dry_run_and_report(self, mock_load_config, mock_service_class, mock_dotenv, report, tmp_path):
        """Test --dry-run and --report options."""
        mock_service_class.return_value.run.return_value = report
        report_path = tmp_path / "report.json"

        with patch('sys.argv', ['sync.py', '--dry-run', '--report', str(report_path)]):
            with pytest.raises(SystemExit) as exc_info:
                sync.main()

        assert exc_info.value.code == 0
        mock_service_class.return_value.run.assert_called_once_with(dry_run=True)
        assert json.loads(report_path.read_text(encoding='utf-8'))['tracks_added'] == 2

    @patch('sync.load_dotenv')
    @patch('sync.SyncService')
    @patch('sync.load_config')
    def test_failure_exits_non_zero(self, mock_load_config, mock_service_class, mock_dotenv, caplog):
        """Test that any failure ends the process with status 1."""
        mock_load_config.side_effect = ConfigError("Missing required configuration: TARGET_PLAYLIST")

        with patch('sys.argv', ['sync.py']):
            with pytest.raises(SystemExit) as exc_info:
                sync.main()

        assert exc_info.value.code == 1
        mock_service_class.assert_not_called()
        assert "Sync failed: Missing required configuration: TARGET_PLAYLIST" in caplog.text


class TestGetTokenCli:
    """Test cases for get_token.main."""

    @patch('get_token.load_dotenv')
    @patch('get_token.acquire_token')
    @patch('get_token.TokenStore')
    @patch('get_token.SpotifyClient')
    @patch('get_token.load_config')
    def test_success(self, mock_load_config, mock_client_class, mock_store_class, mock_acquire, mock_dotenv):
        """Test the acquisition flow is run with the configured collaborators."""
        with patch('sys.argv', ['get_token.py', '--timeout', '120']):
            get_token.main()

        mock_load_config.assert_called_once_with(require_target_playlist=False)
        mock_acquire.assert_called_once_with(
            mock_load_config.return_value,
            mock_client_class.return_value,
            mock_store_class.return_value,
            timeout=120.0
        )

    @patch('get_token.load_dotenv')
    @patch('get_token.acquire_token')
    @patch('get_token.TokenStore')
    @patch('get_token.SpotifyClient')
    @patch('get_token.load_config')
    def test_failure_exits_non_zero(self, mock_load_config, mock_client_class, mock_store_class, mock_acquire, mock_dotenv):
        """Test that a failed login ends the process with status 1."""
        mock_acquire.side_effect = Exception("State mismatch")

        with patch('sys.argv', ['get_token.py']):
            with pytest.raises(SystemExit) as exc_info:
                get_token.main()

        assert exc_info.value.code == 1
