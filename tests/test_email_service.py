"""Tests for the SendGrid email wrapper (no network: _send_mail is patched)."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from estateflow.services import email_service

CONFIGURED = ("SG.test-key", "no-reply@estateflow.test", "https://app.test")


@pytest.mark.asyncio
async def test_skips_when_api_key_missing():
    with patch.object(email_service, "_get_config", return_value=("", "from@test", "https://app.test")), \
            patch.object(email_service, "_send_mail") as send:
        assert await email_service.send_verification_email("a@test.com", "tok") is False
    send.assert_not_called()


@pytest.mark.asyncio
async def test_verification_email_links_to_frontend():
    with patch.object(email_service, "_get_config", return_value=CONFIGURED), \
            patch.object(email_service, "_send_mail", return_value=True) as send:
        assert await email_service.send_verification_email("a@test.com", "tok123") is True

    mail = send.call_args.args[0]
    html = mail.get()["content"][0]["value"]
    assert "https://app.test/verify-email?token=tok123" in html


@pytest.mark.asyncio
async def test_reset_and_change_links():
    with patch.object(email_service, "_get_config", return_value=CONFIGURED), \
            patch.object(email_service, "_send_mail", return_value=True) as send:
        await email_service.send_password_reset_email("a@test.com", "r1")
        await email_service.send_change_confirmation_email("a@test.com", "c1", "email")

    reset_html = send.call_args_list[0].args[0].get()["content"][0]["value"]
    change_html = send.call_args_list[1].args[0].get()["content"][0]["value"]
    assert "/reset-password?token=r1" in reset_html
    assert "/confirm-change?token=c1" in change_html
    assert "email address" in change_html


@pytest.mark.asyncio
async def test_subscription_receipt_formats_amount():
    end = datetime(2026, 12, 31, tzinfo=timezone.utc)
    with patch.object(email_service, "_get_config", return_value=CONFIGURED), \
            patch.object(email_service, "_send_mail", return_value=True) as send:
        await email_service.send_subscription_success_email("a@test.com", "Agency Monthly", 29.99, "USD", end)

    html = send.call_args.args[0].get()["content"][0]["value"]
    assert "29.99 USD" in html
    assert "2026-12-31" in html


@pytest.mark.asyncio
async def test_send_failure_returns_false():
    with patch.object(email_service, "_get_config", return_value=CONFIGURED), \
            patch.object(email_service, "_send_mail", side_effect=RuntimeError("boom")):
        assert await email_service.send_password_reset_email("a@test.com", "r1") is False


def test_send_mail_checks_status_code():
    client = MagicMock()
    client.send.return_value = MagicMock(status_code=202)
    with patch.object(email_service, "_get_client", return_value=client):
        assert email_service._send_mail(MagicMock()) is True

    client.send.return_value = MagicMock(status_code=400, body="bad")
    with patch.object(email_service, "_get_client", return_value=client):
        assert email_service._send_mail(MagicMock()) is False
