"""
Verification-code entry gate.

Collects a six-digit one-time code and hands it to a caller-supplied
``verify`` coroutine. What ``verify`` does with the code, and how its
failures are reported, is up to the caller.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

CODE_LENGTH = 6
DIGITS = "0123456789"


@dataclass(frozen=True)
class Notice:
    """Transient user-facing message, shown for ``duration_ms``."""
    title: str
    description: str
    status: str = "info"
    duration_ms: int = 3000


INVALID_CODE_NOTICE = Notice(
    title="Invalid Code",
    description=f"Please enter a {CODE_LENGTH}-digit verification code",
    status="error",
    duration_ms=3000,
)


def is_valid_code(code: str) -> bool:
    return len(code) == CODE_LENGTH and all(ch in DIGITS for ch in code)


def _log_notice(notice: Notice) -> None:
    logger.warning(f"{notice.title}: {notice.description}")


class VerificationFlow:
    """
    Args:
        verify: Coroutine function called with the complete code
        notify: Callback receiving transient notices (logged by default)
    """

    def __init__(
        self,
        verify: Callable[[str], Awaitable[Any]],
        notify: Optional[Callable[[Notice], None]] = None,
    ):
        self._verify = verify
        self._notify = notify or _log_notice
        self._code = ""
        self._submitting = False

    @property
    def code(self) -> str:
        return self._code

    @property
    def submitting(self) -> bool:
        return self._submitting

    @property
    def is_submittable(self) -> bool:
        return len(self._code) == CODE_LENGTH and not self._submitting

    def set_code(self, value: str) -> str:
        """Accept input the way the code field does: digits only, at most six."""
        self._code = "".join(ch for ch in (value or "") if ch in DIGITS)[:CODE_LENGTH]
        return self._code

    def clear(self) -> None:
        self._code = ""

    async def submit(self, code: Optional[str] = None) -> bool:
        """
        Submit the current code, or ``code`` if given.

        An explicit ``code`` is checked as given: it must be exactly six
        digits, it is not filtered or truncated.

        Returns:
            True if ``verify`` was called, False if the code was rejected
            locally or a submission is already running. Exceptions raised
            by ``verify`` propagate.
        """
        if self._submitting:
            logger.debug("Verification already in progress, ignoring submit")
            return False

        candidate = self._code if code is None else code
        if not is_valid_code(candidate):
            self._notify(INVALID_CODE_NOTICE)
            return False
        self._code = candidate

        self._submitting = True
        try:
            await self._verify(self._code)
        finally:
            self._submitting = False
        return True
