import json
from unittest.mock import MagicMock, patch

from match_alerts import cli
from match_alerts.milestones import Milestone


@patch("match_alerts.cli.configure_logging")
@patch("match_alerts.cli.build_scheduler")
def test_test_command_with_milestone(mock_build, _mock_logging):
    with patch("sys.argv", ["match-alerts", "test", "-m", "started"]):
        cli.main()
    mock_build.return_value.send_test_notification.assert_called_once_with(Milestone.started)


@patch("match_alerts.cli.configure_logging")
@patch("match_alerts.cli.build_scheduler")
def test_stats_command_prints_json(mock_build, _mock_logging, capsys):
    mock_build.return_value.get_stats.return_value = {"eventCount": 2, "state": "idle"}
    with patch("sys.argv", ["match-alerts", "stats"]):
        cli.main()
    assert json.loads(capsys.readouterr().out) == {"eventCount": 2, "state": "idle"}


@patch("match_alerts.cli.configure_logging")
@patch("match_alerts.cli.build_scheduler")
def test_check_command_forces_one_tick(mock_build, _mock_logging):
    mock_build.return_value.force_check_now.return_value = MagicMock(
        skipped=None, event_count=1, dispatched=[], failed=[]
    )
    with patch("sys.argv", ["match-alerts", "check"]):
        cli.main()
    mock_build.return_value.dedup.load.assert_called_once()
    mock_build.return_value.force_check_now.assert_called_once()
