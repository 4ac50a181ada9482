import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from socialhub.client.verification import CODE_LENGTH, INVALID_CODE_NOTICE, VerificationFlow, is_valid_code


@pytest.fixture
def verify():
    return AsyncMock()


@pytest.fixture
def notify():
    return MagicMock()


@pytest.fixture
def flow(verify, notify):
    return VerificationFlow(verify, notify)


class TestCodeInput:

    def test_keeps_digits_only(self, flow):
        assert flow.set_code("12a-3 4") == "1234"

    def test_caps_at_code_length(self, flow):
        assert flow.set_code("123456789") == "123456"
        assert len(flow.code) == CODE_LENGTH

    def test_submittable_only_when_complete(self, flow):
        flow.set_code("12345")
        assert not flow.is_submittable

        flow.set_code("123456")
        assert flow.is_submittable

    @pytest.mark.parametrize("code, valid", [
        ("123456", True),
        ("12345", False),
        ("1234567", False),
        ("12a456", False),
        ("", False),
        ("１23456", False),
    ])
    def test_is_valid_code(self, code, valid):
        assert is_valid_code(code) is valid

    def test_clear(self, flow):
        flow.set_code("123456")
        flow.clear()
        assert flow.code == ""


@pytest.mark.asyncio
class TestSubmit:

    async def test_short_code_never_calls_verify(self, flow, verify, notify):
        submitted = await flow.submit("12345")

        assert submitted is False
        verify.assert_not_awaited()
        notify.assert_called_once_with(INVALID_CODE_NOTICE)
        assert INVALID_CODE_NOTICE.title == "Invalid Code"
        assert INVALID_CODE_NOTICE.description == "Please enter a 6-digit verification code"
        assert INVALID_CODE_NOTICE.status == "error"
        assert INVALID_CODE_NOTICE.duration_ms == 3000

    @pytest.mark.parametrize("code", ["1234567", "12a456", "12 456", ""])
    async def test_explicit_code_is_checked_as_given(self, flow, verify, notify, code):
        submitted = await flow.submit(code)

        assert submitted is False
        verify.assert_not_awaited()
        notify.assert_called_once_with(INVALID_CODE_NOTICE)

    async def test_rejected_code_leaves_current_code(self, flow, verify):
        flow.set_code("654321")

        await flow.submit("6543210")

        assert flow.code == "654321"
        verify.assert_not_awaited()

    async def test_full_code_calls_verify_once(self, flow, verify, notify):
        submitted = await flow.submit("123456")

        assert submitted is True
        verify.assert_awaited_once_with("123456")
        notify.assert_not_called()

    async def test_submits_current_code(self, flow, verify):
        flow.set_code("654321")

        await flow.submit()

        verify.assert_awaited_once_with("654321")

    async def test_verify_errors_propagate(self, flow, verify):
        verify.side_effect = ValueError("Invalid or expired code")

        with pytest.raises(ValueError, match="expired"):
            await flow.submit("123456")

        assert flow.submitting is False

    async def test_second_submit_while_in_flight_is_ignored(self, notify):
        release = asyncio.Event()
        calls = []

        async def slow_verify(code):
            calls.append(code)
            await release.wait()

        flow = VerificationFlow(slow_verify, notify)
        first = asyncio.ensure_future(flow.submit("123456"))
        await asyncio.sleep(0)

        assert flow.submitting is True
        assert flow.is_submittable is False
        assert await flow.submit("123456") is False

        release.set()
        assert await first is True
        assert calls == ["123456"]

    async def test_default_notice_is_logged(self, verify, caplog):
        flow = VerificationFlow(verify)

        await flow.submit("1")

        assert "Invalid Code" in caplog.text
