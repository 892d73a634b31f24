"""Tests for the format_result dispatcher and OutputSettings."""

import json

from wsctl.output.formatters import OutputSettings, format_result
from wsctl.services.result import ServiceError, ServiceResult


def _ok(op: str = "test", **data: object) -> ServiceResult:
    return ServiceResult(ok=True, op=op, data=dict(data))


def _err(op: str = "test", msg: str = "fail") -> ServiceResult:
    return ServiceResult(ok=False, op=op, error=ServiceError(code="ERR", message=msg))


class TestOutputSettings:
    def test_defaults(self) -> None:
        s = OutputSettings()
        assert s.json_output is False
        assert s.quiet is False
        assert s.verbose is False


class TestFormatResultJSON:
    def test_json_mode_returns_valid_json(self) -> None:
        output = format_result(_ok("check", count=0), settings=OutputSettings(json_output=True))
        data = json.loads(output)
        assert data["ok"] is True
        assert data["op"] == "check"
        assert data["data"]["count"] == 0

    def test_json_mode_error(self) -> None:
        output = format_result(_err("check", "Bad"), settings=OutputSettings(json_output=True))
        data = json.loads(output)
        assert data["ok"] is False
        assert data["error"]["message"] == "Bad"

    def test_json_wins_over_quiet(self) -> None:
        settings = OutputSettings(json_output=True, quiet=True)
        assert json.loads(format_result(_ok(), settings=settings))["ok"] is True


class TestFormatResultText:
    def test_quiet_mode(self) -> None:
        output = format_result(_ok("cycles", items=[]), settings=OutputSettings(quiet=True))
        assert output == "OK: cycles"

    def test_default_is_rich_text(self) -> None:
        output = format_result(_ok("custom", answer=42))
        assert "OK" in output
        assert "answer: 42" in output
