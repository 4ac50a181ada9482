"""
Shared fixtures for the SocialHub test suite.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

from socialhub.config.settings import AppConfig, AuthConfig
from socialhub.repositories.code_repository import BaseCodeRepository
from socialhub.repositories.user_repository import BaseUserRepository
from socialhub.schemas.auth_schemas import PendingCode, UserRecord
from socialhub.services.auth_service import AuthService
from socialhub.services.email_service import EmailMessage, EmailSender

TEST_SECRET = "socialhub-test-secret-key-0123456789abcdef"


class InMemoryUserRepository(BaseUserRepository):
    """User repository keeping rows in a list."""

    def __init__(self):
        self.rows: List[UserRecord] = []

    async def find_by_login(self, identifier: str) -> Optional[UserRecord]:
        for row in self.rows:
            if identifier in (row.email, row.username):
                return row
        return None

    async def get_by_id(self, user_id: str) -> Optional[UserRecord]:
        for row in self.rows:
            if row.id == user_id:
                return row
        return None

    async def exists(self, email: str, username: str) -> bool:
        return any(row.email == email or row.username == username for row in self.rows)

    async def create(self, user_data: Dict[str, Any]) -> UserRecord:
        record = UserRecord(
            id=str(uuid.uuid4()),
            created_at=datetime.now(timezone.utc),
            **user_data,
        )
        self.rows.append(record)
        return record

    async def update_password_hash(self, user_id: str, password_hash: str) -> None:
        for index, row in enumerate(self.rows):
            if row.id == user_id:
                self.rows[index] = row.model_copy(update={"password_hash": password_hash})


class InMemoryCodeRepository(BaseCodeRepository):
    """Pending codes keyed by email."""

    def __init__(self):
        self.rows: Dict[str, PendingCode] = {}

    async def replace(self, email: str, row: Dict[str, Any]) -> None:
        self.rows[email] = PendingCode(email=email, **row)

    async def find(self, email: str, code: str) -> Optional[PendingCode]:
        pending = self.rows.get(email)
        if pending is None or pending.code != code:
            return None
        return pending

    async def delete(self, email: str) -> None:
        self.rows.pop(email, None)


class RecordingEmailSender(EmailSender):
    """Keeps sent messages for inspection."""

    def __init__(self):
        self.sent: List[EmailMessage] = []

    async def send(self, message: EmailMessage) -> None:
        self.sent.append(message)

    def last_code(self) -> str:
        return self.sent[-1].body.split("code is: ")[1].split()[0]


def make_config(environment: str = "production", **auth_overrides) -> AppConfig:
    auth = AuthConfig(jwt_secret_key=TEST_SECRET, bcrypt_rounds=4, **auth_overrides)
    return AppConfig(environment=environment, auth=auth)


@pytest.fixture
def config_factory():
    return make_config


@pytest.fixture
def test_config() -> AppConfig:
    return make_config()


@pytest.fixture
def repository() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def verifications() -> InMemoryCodeRepository:
    return InMemoryCodeRepository()


@pytest.fixture
def resets() -> InMemoryCodeRepository:
    return InMemoryCodeRepository()


@pytest.fixture
def mailbox() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def service_factory(repository, verifications, resets, mailbox):
    def build(config: AppConfig) -> AuthService:
        return AuthService(
            repository,
            config,
            verifications=verifications,
            resets=resets,
            email_sender=mailbox,
        )
    return build


@pytest.fixture
def auth_service(service_factory, test_config) -> AuthService:
    return service_factory(test_config)
