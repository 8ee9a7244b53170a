import os
from unittest.mock import patch

import pytest

from services import mailer

ORDER = {
    "id": "ck9f3e2b0000a1b2c3d4",
    "email": "ana@example.com",
    "shipping_address": '{"firstName": "Ana", "lastName": "<Lee>", "address": "1 Quay St", "city": "Cork", "postalCode": "T12", "country": "IE"}',
    "items": [{"product_title": "Blue Hour Print", "size": "A4", "quantity": 2}],
}


@pytest.fixture
def smtp_enabled(monkeypatch):
    monkeypatch.setattr(mailer, "_smtp_config", lambda: {"enabled": True})


@patch("smtplib.SMTP")
def test_send_email_success(mock_smtp, smtp_enabled):
    with patch.dict(os.environ, {"SMTP_EMAIL": "shop@burbar.com", "SMTP_PASSWORD": "secret"}):
        server_instance = mock_smtp.return_value

        assert mailer.send_email("ana@example.com", "Subject", "<p>Body</p>") is True

        mock_smtp.assert_called_with("smtp.gmail.com", 587)
        server_instance.starttls.assert_called_once()
        server_instance.login.assert_called_with("shop@burbar.com", "secret")
        server_instance.sendmail.assert_called_once()
        server_instance.quit.assert_called_once()


def test_send_email_disabled_reports_not_sent(monkeypatch):
    monkeypatch.setattr(mailer, "_smtp_config", lambda: {"enabled": False})
    with patch("smtplib.SMTP") as mock_smtp:
        assert mailer.send_email("ana@example.com", "Subject", "Body") is False
        mock_smtp.assert_not_called()


def test_send_email_missing_credentials(smtp_enabled, monkeypatch):
    monkeypatch.delenv("SMTP_EMAIL", raising=False)
    monkeypatch.delenv("SMTP_PASSWORD", raising=False)
    assert mailer.send_email("ana@example.com", "Subject", "Body") is False


@patch("smtplib.SMTP")
def test_send_email_smtp_failure(mock_smtp, smtp_enabled):
    mock_smtp.return_value.login.side_effect = OSError("connection reset")
    with patch.dict(os.environ, {"SMTP_EMAIL": "shop@burbar.com", "SMTP_PASSWORD": "secret"}):
        assert mailer.send_email("ana@example.com", "Subject", "Body") is False
    mock_smtp.return_value.quit.assert_called_once()


def test_shipping_notification_content():
    subject, body = mailer.shipping_notification(ORDER, "1Z999AA1", "https://track.example.com/1Z999AA1")

    assert subject == "Your Burbar Shop order has shipped! #A1B2C3D4"
    assert "#A1B2C3D4" in body
    assert "1Z999AA1" in body
    assert "Track Your Package" in body
    assert "Blue Hour Print" in body
    assert "Ana &lt;Lee&gt;" in body
    assert mailer.SUPPORT_EMAIL in body


def test_shipping_notification_without_url_or_address():
    order = dict(ORDER, shipping_address="not json", items=[])
    subject, body = mailer.shipping_notification(order, "TRK")
    assert "Track Your Package" not in body
    assert "TRK" in body
