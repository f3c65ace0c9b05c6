"""
Tests for the calorie-snap command line.
"""

from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from PIL import Image

from calorie_snap import cli

SUCCESS = {
    "success": True,
    "data": {
        "foods": [{"name": "apple", "calories": 95, "cooking_method": "raw", "confidence": 0.97}],
        "total_calories": 95,
    },
}
FAILURE = {
    "success": False,
    "error": {"code": "INVALID_IMAGE", "message": "bad", "retryable": False},
}


@pytest.fixture
def photo(tmp_path: Path) -> Path:
    path = tmp_path / "lunch.png"
    Image.new("RGB", (32, 32), (120, 60, 10)).save(path)
    return path


def _patch_client(envelope: Any = None, error: Any = None) -> Any:
    mock = AsyncMock()
    mock.__aenter__.return_value = mock
    mock.analyze_with_retry = AsyncMock(return_value=envelope, side_effect=error)
    return patch.object(cli, "AnalysisClient", return_value=mock)


class TestAnalyzeCommand:
    def test_success(self, photo: Path, capsys: pytest.CaptureFixture[str]) -> None:
        with _patch_client(SUCCESS) as client_cls:
            code = cli.main(["analyze", str(photo), "--url", "http://svc:9000", "--retries", "2"])

        assert code == 0
        client_cls.assert_called_once_with("http://svc:9000")
        mock = client_cls.return_value
        image, = mock.analyze_with_retry.call_args.args
        assert image.startswith("data:image/jpeg;base64,")
        assert mock.analyze_with_retry.call_args.kwargs["max_attempts"] == 2
        out = capsys.readouterr().out
        assert "Total: 95 calories" in out
        assert "🥗 Raw" in out

    def test_error_envelope_exit_code(
        self, photo: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with _patch_client(FAILURE):
            code = cli.main(["analyze", str(photo), "--session-id", "abc"])

        assert code == 1
        assert "Analysis failed [INVALID_IMAGE]: bad" in capsys.readouterr().out

    def test_json_output(self, photo: Path, capsys: pytest.CaptureFixture[str]) -> None:
        with _patch_client(SUCCESS):
            cli.main(["analyze", str(photo), "--json"])

        assert '"total_calories": 95' in capsys.readouterr().out

    def test_unreadable_image(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code = cli.main(["analyze", str(tmp_path / "missing.jpg")])

        assert code == 2
        assert "Cannot read image" in capsys.readouterr().err

    def test_transport_error(self, photo: Path, capsys: pytest.CaptureFixture[str]) -> None:
        with _patch_client(error=httpx.ConnectError("refused")):
            code = cli.main(["analyze", str(photo)])

        assert code == 3
        assert "Request failed" in capsys.readouterr().err


class TestServeCommand:
    def test_runs_uvicorn_factory(self) -> None:
        with patch.object(cli.uvicorn, "run") as run:
            code = cli.main(["serve", "--port", "9001"])

        assert code == 0
        run.assert_called_once_with(
            "calorie_snap.app:create_app",
            factory=True,
            host="127.0.0.1",
            port=9001,
            reload=False,
        )

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            cli.main([])
