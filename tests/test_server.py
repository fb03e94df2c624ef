"""Tests for the command-line entry point."""

from unittest.mock import patch

from strava_relay import server


class TestMain:
    """Tests for main."""

    def test_runs_app_with_configured_address(self):
        env = {
            "STRAVA_CLIENT_ID": "12345",
            "STRAVA_CLIENT_SECRET": "test_client_secret",
            "STRAVA_RELAY_HOST": "0.0.0.0",
            "STRAVA_RELAY_PORT": "8080",
        }
        with patch.dict("os.environ", env, clear=True), patch(
            "strava_relay.server.uvicorn.run"
        ) as mock_run, patch("strava_relay.server.logging.basicConfig"):
            server.main()

        mock_run.assert_called_once()
        args, kwargs = mock_run.call_args
        assert kwargs["host"] == "0.0.0.0"
        assert kwargs["port"] == 8080
        assert kwargs["log_level"] == "info"
        assert {route.path for route in args[0].routes} >= {
            "/login",
            "/oauth_redirect",
            "/strava/webhook",
            "/strava/athlete",
        }
