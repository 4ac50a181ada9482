import asyncio
from unittest.mock import AsyncMock

import pytest

from socialhub.client.gateway import CONNECTION_MESSAGE, AuthGateway, GatewayResult
from socialhub.client.session_store import (
    LOGIN_FAILED_MESSAGE,
    REGISTRATION_FAILED_MESSAGE,
    SIGNUP_FAILED_MESSAGE,
    VERIFICATION_FAILED_MESSAGE,
    AuthError,
    SessionStatus,
    SessionStore,
    open_session,
)
from socialhub.client.token_storage import MemoryTokenStorage
from socialhub.client.verification import VerificationFlow

USER = {"id": 1, "email": "a@b.com", "username": "ab", "display_name": "Y"}


def auth_success(user=USER, token="tok-123"):
    return GatewayResult.success(200, {"message": "ok", "token": token, "user": dict(user)})


@pytest.fixture
def gateway():
    return AsyncMock(spec=AuthGateway)


@pytest.fixture
def storage():
    return MemoryTokenStorage()


@pytest.fixture
def store(gateway, storage):
    return SessionStore(gateway, storage)


@pytest.mark.asyncio
class TestCheckAuth:

    async def test_no_persisted_token_skips_network(self, store, gateway):
        assert store.loading is True
        assert store.status is SessionStatus.UNRESOLVED

        await store.check_auth()

        assert store.loading is False
        assert store.user is None
        assert store.status is SessionStatus.ANONYMOUS
        gateway.me.assert_not_awaited()

    async def test_valid_token_restores_session(self, store, gateway, storage):
        storage.set_token("tok-123")
        gateway.me.return_value = GatewayResult.success(200, {"user": dict(USER)})

        await store.check_auth()

        gateway.me.assert_awaited_once_with("tok-123")
        assert store.user == USER
        assert store.token == "tok-123"
        assert store.status is SessionStatus.AUTHENTICATED

    async def test_rejected_token_is_cleared_silently(self, store, gateway, storage):
        storage.set_token("stale")
        gateway.me.return_value = GatewayResult.failure(status=401, server_message="Unauthorized")

        await store.check_auth()

        assert storage.get_token() is None
        assert store.user is None
        assert store.token is None
        assert store.loading is False
        assert store.error is None

    async def test_network_failure_is_swallowed(self, store, gateway, storage):
        storage.set_token("tok-123")
        gateway.me.return_value = GatewayResult.failure(transport_error=CONNECTION_MESSAGE)

        await store.check_auth()

        assert storage.get_token() is None
        assert store.user is None
        assert store.loading is False

    async def test_unexpected_exception_is_swallowed(self, store, gateway, storage):
        storage.set_token("tok-123")
        gateway.me.side_effect = RuntimeError("event loop hiccup")

        await store.check_auth()

        assert storage.get_token() is None
        assert store.loading is False

    async def test_runs_once(self, store, gateway, storage):
        storage.set_token("tok-123")
        gateway.me.return_value = GatewayResult.success(200, {"user": dict(USER)})

        await asyncio.gather(store.check_auth(), store.check_auth())
        await store.check_auth()

        assert gateway.me.await_count == 1

    async def test_failed_check_keeps_concurrent_login(self, store, gateway, storage):
        storage.set_token("stale")
        checking = asyncio.Event()

        async def slow_rejection(token):
            checking.set()
            await asyncio.sleep(0.01)
            return GatewayResult.failure(status=401, server_message="Unauthorized")

        gateway.me.side_effect = slow_rejection
        gateway.login.return_value = auth_success(token="fresh")

        check = asyncio.ensure_future(store.check_auth())
        await checking.wait()
        await store.login("a@b.com", "pw")
        await check

        assert store.user == USER
        assert store.token == "fresh"
        assert storage.get_token() == "fresh"
        assert store.status is SessionStatus.AUTHENTICATED

    async def test_late_check_success_does_not_replace_login(self, store, gateway, storage):
        storage.set_token("stale")
        checking = asyncio.Event()

        async def slow_acceptance(token):
            checking.set()
            await asyncio.sleep(0.01)
            return GatewayResult.success(200, {"user": {"id": 2}})

        gateway.me.side_effect = slow_acceptance
        gateway.login.return_value = auth_success(token="fresh")

        check = asyncio.ensure_future(store.check_auth())
        await checking.wait()
        await store.login("a@b.com", "pw")
        await check

        assert store.user == USER
        assert store.token == "fresh"

    async def test_wait_until_resolved(self, store):
        waiter = asyncio.ensure_future(store.wait_until_resolved())
        await asyncio.sleep(0)
        assert not waiter.done()

        await store.check_auth()
        session = await waiter

        assert session.loading is False
        assert session.status is SessionStatus.ANONYMOUS


@pytest.mark.asyncio
class TestLogin:

    async def test_success_persists_token_and_sets_user(self, store, gateway, storage):
        gateway.login.return_value = auth_success()

        user = await store.login("a@b.com", "pw")

        gateway.login.assert_awaited_once_with("a@b.com", "pw")
        assert user == USER
        assert store.user == USER
        assert store.token == "tok-123"
        assert storage.get_token() == "tok-123"
        assert store.error is None

    async def test_failure_sets_server_message_and_raises(self, store, gateway):
        gateway.login.return_value = GatewayResult.failure(status=401, server_message="Invalid credentials")

        with pytest.raises(AuthError) as exc_info:
            await store.login("a@b.com", "wrong")

        assert exc_info.value.message == "Invalid credentials"
        assert exc_info.value.status == 401
        assert store.error == "Invalid credentials"
        assert store.user is None

    async def test_failure_without_message_uses_fallback(self, store, gateway):
        gateway.login.return_value = GatewayResult.failure(transport_error=CONNECTION_MESSAGE)

        with pytest.raises(AuthError) as exc_info:
            await store.login("a@b.com", "pw")

        assert store.error == LOGIN_FAILED_MESSAGE
        assert exc_info.value.transport_error == CONNECTION_MESSAGE

    async def test_new_attempt_clears_previous_error(self, store, gateway):
        gateway.login.return_value = GatewayResult.failure(status=401, server_message="Invalid credentials")
        with pytest.raises(AuthError):
            await store.login("a@b.com", "wrong")

        gateway.login.return_value = auth_success()
        await store.login("a@b.com", "pw")

        assert store.error is None

    async def test_concurrent_logins_share_one_request(self, store, gateway):
        async def slow_login(email, password):
            await asyncio.sleep(0.01)
            return auth_success()

        gateway.login.side_effect = slow_login

        first, second = await asyncio.gather(
            store.login("a@b.com", "pw"),
            store.login("A@B.com", "pw"),
        )

        assert gateway.login.await_count == 1
        assert first == second == USER

    async def test_concurrent_failures_share_one_error(self, store, gateway):
        async def slow_login(email, password):
            await asyncio.sleep(0.01)
            return GatewayResult.failure(status=401, server_message="Invalid credentials")

        gateway.login.side_effect = slow_login

        results = await asyncio.gather(
            store.login("a@b.com", "pw"),
            store.login("a@b.com", "pw"),
            return_exceptions=True,
        )

        assert gateway.login.await_count == 1
        assert all(isinstance(result, AuthError) for result in results)

    async def test_different_passwords_are_separate_requests(self, store, gateway):
        async def slow_login(email, password):
            await asyncio.sleep(0.01)
            if password == "right":
                return auth_success()
            return GatewayResult.failure(status=401, server_message="Invalid credentials")

        gateway.login.side_effect = slow_login

        wrong, right = await asyncio.gather(
            store.login("a@b.com", "wrong"),
            store.login("a@b.com", "right"),
            return_exceptions=True,
        )

        assert gateway.login.await_count == 2
        sent = sorted(call.args[1] for call in gateway.login.await_args_list)
        assert sent == ["right", "wrong"]
        assert isinstance(wrong, AuthError)
        assert right == USER


@pytest.mark.asyncio
class TestRegister:

    async def test_success_logs_in(self, store, gateway, storage):
        gateway.register.return_value = auth_success(token="fresh")
        payload = {"email": "a@b.com", "username": "ab", "password": "pw", "display_name": "Y"}

        user = await store.register(payload)

        gateway.register.assert_awaited_once_with(payload)
        assert user == USER
        assert storage.get_token() == "fresh"

    async def test_failure_without_message_uses_fallback(self, store, gateway):
        gateway.register.return_value = GatewayResult.failure(status=500)

        with pytest.raises(AuthError):
            await store.register({"email": "a@b.com"})

        assert store.error == REGISTRATION_FAILED_MESSAGE

    async def test_conflict_message_is_surfaced(self, store, gateway):
        gateway.register.return_value = GatewayResult.failure(status=409, server_message="Conflict")

        with pytest.raises(AuthError, match="Conflict"):
            await store.register({"email": "a@b.com"})

        assert store.error == "Conflict"

    async def test_different_payloads_are_separate_requests(self, store, gateway):
        async def slow_register(payload):
            await asyncio.sleep(0.01)
            return auth_success(user={"id": payload["username"]})

        gateway.register.side_effect = slow_register

        first, second = await asyncio.gather(
            store.register({"username": "one", "password": "pw"}),
            store.register({"username": "two", "password": "pw"}),
        )

        assert gateway.register.await_count == 2
        assert {first["id"], second["id"]} == {"one", "two"}

    async def test_identical_payloads_share_one_request(self, store, gateway):
        async def slow_register(payload):
            await asyncio.sleep(0.01)
            return auth_success()

        gateway.register.side_effect = slow_register
        payload = {"email": "a@b.com", "username": "ab", "password": "pw", "display_name": "Y"}

        await asyncio.gather(store.register(payload), store.register(dict(payload)))

        assert gateway.register.await_count == 1


@pytest.mark.asyncio
class TestSignup:

    async def test_signup_returns_message_and_keeps_session(self, store, gateway, storage):
        gateway.signup.return_value = GatewayResult.success(200, {"message": "Verification code sent to your email."})
        payload = {"email": "a@b.com", "username": "ab", "password": "pw", "display_name": "Y"}

        message = await store.signup(payload)

        gateway.signup.assert_awaited_once_with(payload)
        assert message == "Verification code sent to your email."
        assert store.user is None
        assert storage.get_token() is None

    async def test_signup_failure_uses_fallback(self, store, gateway):
        gateway.signup.return_value = GatewayResult.failure(transport_error=CONNECTION_MESSAGE)

        with pytest.raises(AuthError):
            await store.signup({"email": "a@b.com"})

        assert store.error == SIGNUP_FAILED_MESSAGE

    async def test_verify_email_logs_in(self, store, gateway, storage):
        gateway.verify_email.return_value = auth_success(token="verified")

        user = await store.verify_email("a@b.com", "123456")

        gateway.verify_email.assert_awaited_once_with("a@b.com", "123456")
        assert user == USER
        assert store.token == "verified"
        assert storage.get_token() == "verified"

    async def test_verify_email_failure_surfaces_server_message(self, store, gateway):
        gateway.verify_email.return_value = GatewayResult.failure(
            status=400, server_message="Invalid or expired verification code"
        )

        with pytest.raises(AuthError, match="Invalid or expired verification code"):
            await store.verify_email("a@b.com", "000000")

        assert store.error == "Invalid or expired verification code"
        assert store.user is None

    async def test_verify_email_failure_without_message(self, store, gateway):
        gateway.verify_email.return_value = GatewayResult.failure(status=500)

        with pytest.raises(AuthError):
            await store.verify_email("a@b.com", "000000")

        assert store.error == VERIFICATION_FAILED_MESSAGE

    async def test_verification_flow_submits_to_verify_email(self, store, gateway):
        gateway.verify_email.return_value = auth_success(token="verified")
        flow = VerificationFlow(lambda code: store.verify_email("a@b.com", code))

        assert await flow.submit("123456") is True

        gateway.verify_email.assert_awaited_once_with("a@b.com", "123456")
        assert store.user == USER


class TestLocalOperations:

    @pytest.mark.asyncio
    async def test_logout_clears_everything(self, store, gateway, storage):
        gateway.login.return_value = auth_success()
        await store.login("a@b.com", "pw")

        store.logout()

        assert store.user is None
        assert store.token is None
        assert storage.get_token() is None

    def test_logout_without_session_never_fails(self, store):
        store.logout()
        assert store.user is None

    @pytest.mark.asyncio
    async def test_update_user_merges_shallowly(self, store, gateway):
        gateway.login.return_value = auth_success(user={"id": 1, "display_name": "Y"})
        await store.login("a@b.com", "pw")

        store.update_user({"display_name": "X"})

        assert store.user == {"id": 1, "display_name": "X"}

    def test_update_user_without_user_is_noop(self, store):
        store.update_user({"display_name": "X"})
        assert store.user is None

    def test_snapshot_is_a_copy(self, store):
        snapshot = store.snapshot()

        assert snapshot.user is None
        assert snapshot.loading is True
        assert snapshot.status is SessionStatus.UNRESOLVED


@pytest.mark.asyncio
class TestOpenSession:

    async def test_yields_resolved_store_and_closes(self, gateway):
        storage = MemoryTokenStorage("tok-123")
        gateway.me.return_value = GatewayResult.success(200, {"user": dict(USER)})

        async with open_session(gateway=gateway, storage=storage) as session:
            assert session.loading is False
            assert session.user == USER

        gateway.close.assert_awaited_once()

    async def test_close_cancels_in_flight_login(self, gateway):
        started = asyncio.Event()

        async def hanging_login(email, password):
            started.set()
            await asyncio.sleep(60)

        gateway.login.side_effect = hanging_login

        async with open_session(gateway=gateway, storage=MemoryTokenStorage()) as session:
            pending = asyncio.ensure_future(session.login("a@b.com", "pw"))
            await started.wait()

        with pytest.raises(asyncio.CancelledError):
            await pending
