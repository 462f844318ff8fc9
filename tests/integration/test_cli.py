"""Smoke tests for the pushlink command line app."""

import sys
from unittest.mock import MagicMock, patch

import pytest
from loguru import logger

from pushlink.cli import PushLinkApp, main
from pushlink.engine import ConfigurationError, ConnectionConfig, Endpoint, Environment, Service
from pushlink.engine.endpoints import ENDPOINTS

from tests.conftest import PROVIDER_PEM, waitFor


@pytest.fixture
def restore_logging():
    yield
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def local_gateway(tls_server, monkeypatch):
    """Point the built-in gateway table at the local test server."""
    ep = Endpoint("ssl", "127.0.0.1", tls_server.port)
    monkeypatch.setitem(ENDPOINTS, Service.GATEWAY, {env: ep for env in Environment})
    return tls_server


def make_config(**overrides):
    config = ConnectionConfig(str(PROVIDER_PEM), environment="sandbox")
    config.connectTimeout = 5
    config.socketSelectTimeout = 100_000
    for k, v in overrides.items():
        setattr(config, k, v)

    return config


class TestChooseEnvironment:
    def test_configured_environment_is_kept(self):
        app = PushLinkApp(config=make_config())
        app.chooseEnvironment()
        assert app.config.environment == "sandbox"

    def test_missing_environment_without_terminal(self, monkeypatch):
        monkeypatch.setattr(sys.stdin, "isatty", lambda: False, raising=False)
        app = PushLinkApp(config=make_config(environment=None))

        with pytest.raises(ConfigurationError, match="PUSHLINK_ENVIRONMENT"):
            app.chooseEnvironment()

    def test_prompts_on_terminal(self, monkeypatch):
        monkeypatch.setattr(sys.stdin, "isatty", lambda: True, raising=False)
        app = PushLinkApp(config=make_config(environment=None))

        with patch("pushlink.cli.questionary.select") as select:
            select.return_value = MagicMock(ask=MagicMock(return_value="production"))
            app.chooseEnvironment()

        assert app.config.environment == "production"
        assert select.call_args.kwargs["choices"] == ["production", "sandbox"]


class TestRun:
    def test_run_connects_probes_and_disconnects(self, local_gateway):
        app = PushLinkApp(config=make_config())

        assert app.run() == 0
        assert app.manager is not None
        assert app.manager.handle is None
        assert waitFor(lambda: local_gateway.accepted == 1)

    def test_setup_logging_writes_files(self, tmp_path, restore_logging):
        app = PushLinkApp(config=make_config(), logDir=tmp_path)
        app.setupLogging()
        logger.info("hello from the test")

        logs = list(tmp_path.rglob("*-pushlink.log"))
        assert len(logs) == 1
        assert "hello from the test" in logs[0].read_text()

        app.setConsoleLogLevel("WARNING")
        assert app.logLevel == "WARNING"


class TestMain:
    def test_missing_certificate_exits_nonzero(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("PUSHLINK_CERTIFICATE", raising=False)

        assert main() == 1

    def test_unreachable_server_exits_nonzero(self, closed_port, tmp_path, monkeypatch, restore_logging):
        monkeypatch.setitem(
            ENDPOINTS,
            Service.GATEWAY,
            {env: Endpoint("ssl", "127.0.0.1", closed_port) for env in Environment},
        )
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("PUSHLINK_CERTIFICATE", str(PROVIDER_PEM))
        monkeypatch.setenv("PUSHLINK_ENVIRONMENT", "production")
        monkeypatch.setenv("PUSHLINK_CONNECT_RETRY_TIMES", "1")
        monkeypatch.setenv("PUSHLINK_CONNECT_RETRY_INTERVAL", "0")
        monkeypatch.setenv("PUSHLINK_LOGDIR", str(tmp_path / "logs"))

        assert main() == 1
