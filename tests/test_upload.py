from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from sharing.errors import DuplicateCode, FileTooLarge
from sharing.models import UNLIMITED_DOWNLOADS, SharedFile, ShareSettings

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _shared(**overrides) -> SharedFile:
    fields = {
        "id": "id-1",
        "share_code": "ABCD1234",
        "file_name": "report.pdf",
        "file_size": 5,
        "file_type": "application/pdf",
        "has_password": False,
        "uploaded_at": NOW,
        "expires_at": NOW + timedelta(days=7),
        "download_count": 0,
        "max_downloads": 100,
    }
    fields.update(overrides)
    return SharedFile(**fields)


@pytest.fixture
def mock_progress():
    """Returns a context-manager-compatible Progress mock."""
    with patch("ui.upload.Progress") as mock_cls:
        instance = MagicMock()
        instance.__enter__ = MagicMock(return_value=instance)
        instance.__exit__ = MagicMock(return_value=False)
        mock_cls.return_value = instance
        yield instance


@pytest.fixture
def settings():
    settings = ShareSettings(expires_at=NOW + timedelta(days=7))
    with patch("ui.upload.prompt_share_settings", return_value=settings):
        yield settings


# ---------------------------------------------------------------------------
# upload_flow
# ---------------------------------------------------------------------------

def test_upload_flow_rejects_missing_file(tmp_path, capsys):
    from ui.upload import upload_flow

    service = MagicMock()
    with patch("ui.upload.Prompt.ask", return_value=str(tmp_path / "nope.txt")):
        upload_flow(service)

    assert "not found" in capsys.readouterr().out.lower()
    service.create_share.assert_not_called()


def test_upload_flow_rejects_directory(tmp_path, capsys):
    from ui.upload import upload_flow

    service = MagicMock()
    with patch("ui.upload.Prompt.ask", return_value=str(tmp_path)):
        upload_flow(service)

    assert "directory" in capsys.readouterr().out.lower()
    service.create_share.assert_not_called()


def test_upload_flow_shows_code(tmp_path, capsys, mock_progress, settings):
    from ui.upload import upload_flow

    test_file = tmp_path / "report.pdf"
    test_file.write_bytes(b"%PDF-")
    service = MagicMock()
    service.create_share.return_value = _shared()

    with patch("ui.upload.Prompt.ask", return_value=str(test_file)):
        upload_flow(service)

    upload, passed_settings = service.create_share.call_args[0]
    assert upload.name == "report.pdf"
    assert upload.data == b"%PDF-"
    assert upload.file_type == "application/pdf"
    assert passed_settings is settings
    assert "ABCD1234" in capsys.readouterr().out


def test_upload_flow_shows_password_once(tmp_path, capsys, mock_progress, settings):
    from ui.upload import upload_flow

    test_file = tmp_path / "report.pdf"
    test_file.write_bytes(b"%PDF-")
    service = MagicMock()
    service.create_share.return_value = _shared(has_password=True, password="secret")

    with patch("ui.upload.Prompt.ask", return_value=str(test_file)):
        upload_flow(service)

    out = capsys.readouterr().out
    assert "secret" in out
    assert "cannot be shown again" in out


def test_upload_flow_drives_progress_from_encoded_bytes(tmp_path, mock_progress, settings):
    from ui.upload import upload_flow

    test_file = tmp_path / "data.bin"
    test_file.write_bytes(b"12345")
    service = MagicMock()
    service.create_share.return_value = _shared()
    mock_progress.add_task.return_value = 7

    with patch("ui.upload.Prompt.ask", return_value=str(test_file)):
        upload_flow(service)

    mock_progress.add_task.assert_called_once_with("data.bin", total=5)
    callback = service.create_share.call_args[1]["progress"]
    callback(5)
    mock_progress.update.assert_called_with(7, advance=5)


def test_upload_flow_reports_duplicate_code(tmp_path, capsys, mock_progress, settings):
    from ui.upload import upload_flow

    test_file = tmp_path / "report.pdf"
    test_file.write_bytes(b"%PDF-")
    service = MagicMock()
    service.create_share.side_effect = DuplicateCode("MYCODE01")

    with patch("ui.upload.Prompt.ask", return_value=str(test_file)):
        upload_flow(service)

    assert "already in use" in capsys.readouterr().out


def test_upload_flow_reports_file_too_large(tmp_path, capsys, mock_progress, settings):
    from ui.upload import upload_flow

    test_file = tmp_path / "big.bin"
    test_file.write_bytes(b"x")
    service = MagicMock()
    service.create_share.side_effect = FileTooLarge(6 * 1024 * 1024, 5 * 1024 * 1024)

    with patch("ui.upload.Prompt.ask", return_value=str(test_file)):
        upload_flow(service)

    out = capsys.readouterr().out
    assert "too large" in out
    assert "5.0 MB" in out


# ---------------------------------------------------------------------------
# share settings prompts
# ---------------------------------------------------------------------------

def test_prompt_share_settings_collects_everything():
    from ui.prompts import prompt_share_settings

    answers = ["shown.pdf", "my-code", "secret", "1d", "5"]
    with patch("ui.prompts.Prompt.ask", side_effect=answers):
        settings = prompt_share_settings("report.pdf")

    assert settings.custom_file_name == "shown.pdf"
    assert settings.custom_code == "MYCODE"
    assert settings.password == "secret"
    assert settings.max_downloads == 5
    remaining = settings.expires_at - datetime.now(timezone.utc)
    assert timedelta(hours=23) < remaining <= timedelta(days=1)


def test_prompt_share_settings_defaults():
    from ui.prompts import prompt_share_settings

    answers = ["report.pdf", "", "", "7d", "100"]
    with patch("ui.prompts.Prompt.ask", side_effect=answers):
        settings = prompt_share_settings("report.pdf")

    assert settings.custom_file_name is None
    assert settings.custom_code is None
    assert settings.password is None
    assert settings.max_downloads == 100


def test_prompt_download_limit_unlimited():
    from ui.prompts import prompt_download_limit

    with patch("ui.prompts.Prompt.ask", return_value="unlimited"):
        assert prompt_download_limit() == UNLIMITED_DOWNLOADS


def test_prompt_download_limit_out_of_range_falls_back(capsys):
    from ui.prompts import prompt_download_limit

    with patch("ui.prompts.Prompt.ask", return_value="5000"):
        assert prompt_download_limit() == 100
    assert "between 1 and 1000" in capsys.readouterr().out


def test_prompt_expiry_custom_past_date_falls_back(capsys):
    from ui.prompts import prompt_expiry

    with patch("ui.prompts.Prompt.ask", side_effect=["custom", "2000-01-01 10:00"]):
        expires_at = prompt_expiry()

    assert expires_at - datetime.now(timezone.utc) > timedelta(days=6)
    assert "future" in capsys.readouterr().out


def test_prompt_expiry_custom_future_date():
    from ui.prompts import prompt_expiry

    future = (datetime.now() + timedelta(days=3)).strftime("%Y-%m-%d %H:%M")
    with patch("ui.prompts.Prompt.ask", side_effect=["custom", future]):
        expires_at = prompt_expiry()

    remaining = expires_at - datetime.now(timezone.utc)
    assert timedelta(days=2) < remaining < timedelta(days=4)


def test_prompt_share_settings_generates_password(capsys):
    from ui.prompts import GENERATED_PASSWORD_LENGTH, PASSWORD_CHARS, prompt_share_settings

    answers = ["report.pdf", "", "generate", "7d", "100"]
    with patch("ui.prompts.Prompt.ask", side_effect=answers):
        settings = prompt_share_settings("report.pdf")

    assert len(settings.password) == GENERATED_PASSWORD_LENGTH
    assert set(settings.password) <= set(PASSWORD_CHARS)
    assert "Generated a random password" in capsys.readouterr().out


def test_generate_password_draws_fresh_values():
    from ui.prompts import generate_password

    assert len(generate_password(20)) == 20
    assert generate_password() != generate_password()
