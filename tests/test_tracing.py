"""Tests for the optional MLflow tracing integration."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

import lab_report_mcp.tracing as mod
from lab_report_mcp.config import ServerConfig, _resolve_tracing_enabled


@pytest.fixture()
def mock_mlflow(monkeypatch):
    """Pretend mlflow is installed and hand back the mock module."""
    fake = MagicMock()
    monkeypatch.setattr(mod, "_HAS_MLFLOW", True)
    monkeypatch.setattr(mod, "mlflow", fake, raising=False)
    return fake


def _use_config(monkeypatch, **overrides):
    defaults = {
        "tracing_enabled": True,
        "mlflow_tracking_uri": "http://127.0.0.1:5001",
        "mlflow_experiment_name": "lab-report-mcp",
    }
    defaults.update(overrides)
    monkeypatch.setattr("lab_report_mcp.config._config", ServerConfig(**defaults))


class TestIsEnabled:
    def test_true_when_installed_and_enabled(self, mock_mlflow, monkeypatch):
        _use_config(monkeypatch)
        assert mod.is_enabled() is True

    def test_false_when_not_installed(self, monkeypatch):
        monkeypatch.setattr(mod, "_HAS_MLFLOW", False)
        assert mod.is_enabled() is False

    def test_false_when_config_disabled(self, mock_mlflow, monkeypatch):
        _use_config(monkeypatch, tracing_enabled=False)
        assert mod.is_enabled() is False


class TestTraceDecorator:
    def test_identity_when_disabled(self, monkeypatch):
        monkeypatch.setattr(mod, "_HAS_MLFLOW", False)

        async def tool():
            return 1

        assert mod.trace(name="x", span_type="TOOL")(tool) is tool

    def test_wraps_when_enabled(self, mock_mlflow, monkeypatch):
        _use_config(monkeypatch)

        def tool():
            return 1

        mod.trace(tool, name="tool", span_type="TOOL")
        mock_mlflow.trace.assert_called_once_with(tool, name="tool", span_type="TOOL", attributes=None)


class TestSetup:
    def test_gemini_autolog(self, mock_mlflow, monkeypatch):
        _use_config(monkeypatch, mlflow_experiment_name="custom")
        mod.setup()
        mock_mlflow.set_tracking_uri.assert_called_once_with("http://127.0.0.1:5001")
        mock_mlflow.set_experiment.assert_called_once_with("custom")
        mock_mlflow.gemini.autolog.assert_called_once()

    def test_no_gemini_autolog_for_other_providers(self, mock_mlflow, monkeypatch):
        _use_config(monkeypatch, provider="openai")
        mod.setup()
        mock_mlflow.set_tracking_uri.assert_called_once()
        mock_mlflow.gemini.autolog.assert_not_called()

    def test_noop_when_disabled(self, mock_mlflow, monkeypatch):
        _use_config(monkeypatch, tracing_enabled=False)
        mod.setup()
        mock_mlflow.set_tracking_uri.assert_not_called()

    def test_setup_swallows_exceptions(self, mock_mlflow, monkeypatch):
        _use_config(monkeypatch)
        mock_mlflow.set_experiment.side_effect = Exception("connection refused")
        mod.setup()
        mock_mlflow.gemini.autolog.assert_not_called()


class TestShutdown:
    def test_flushes(self, mock_mlflow, monkeypatch):
        _use_config(monkeypatch)
        mod.shutdown()
        mock_mlflow.flush_trace_async_logging.assert_called_once()

    def test_noop_when_disabled(self, monkeypatch):
        monkeypatch.setattr(mod, "_HAS_MLFLOW", False)
        mod.shutdown()


class TestResolveTracingEnabled:
    @pytest.mark.parametrize("flag,uri,expected", [
        ("", "http://127.0.0.1:5001", True),
        ("", "", False),
        ("false", "http://127.0.0.1:5001", False),
        ("False", "http://127.0.0.1:5001", False),
        ("true", "http://127.0.0.1:5001", True),
        ("true", "", False),
    ])
    def test_resolution(self, flag, uri, expected):
        assert _resolve_tracing_enabled(flag, uri) is expected
