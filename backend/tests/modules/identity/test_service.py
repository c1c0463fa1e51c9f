"""Tests for the identity service."""

import pytest
from datetime import datetime, timedelta, timezone

from modules.identity.exceptions import (
    AccountNotFoundError,
    EmailInUseError,
    InvalidSessionError,
    LinkEmailError,
    UserNotFoundError,
)
from modules.identity.models import MergeStep
from modules.identity.service import IdentityService, RECOVERY_MESSAGE
from shared.exceptions import ExternalServiceError


def _expires() -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=3)


@pytest.fixture
def service(user_repo, image_repo) -> IdentityService:
    return IdentityService(users=user_repo, images=image_repo)


class TestGetOrCreateUser:
    @pytest.mark.asyncio
    async def test_creates_anonymous_user(self, service, user_repo):
        user = await service.get_or_create_user("session-1")

        assert user.session_id == "session-1"
        assert user.email is None
        assert user.email_verified is False
        assert user.is_claimed is False
        assert len(user_repo.rows) == 1

    @pytest.mark.asyncio
    async def test_is_idempotent(self, service, user_repo):
        first = await service.get_or_create_user("session-1")
        second = await service.get_or_create_user("session-1")

        assert first.id == second.id
        assert len(user_repo.rows) == 1

    @pytest.mark.asyncio
    async def test_rejects_malformed_session(self, service):
        with pytest.raises(InvalidSessionError):
            await service.get_or_create_user("not a session")

    @pytest.mark.asyncio
    async def test_lost_insert_race_returns_winner(self, service, user_repo):
        """A concurrent insert for the same session is read back."""
        winner = user_repo.add("session-1")
        calls = {"n": 0}
        real_get = user_repo.get_by_session_id

        def first_miss(session_id):
            calls["n"] += 1
            return None if calls["n"] == 1 else real_get(session_id)

        user_repo.get_by_session_id = first_miss

        user = await service.get_or_create_user("session-1")
        assert user.id == winner.id

    @pytest.mark.asyncio
    async def test_lookup_failure(self, service, user_repo):
        user_repo.fail_on.add("get_by_session_id")
        with pytest.raises(ExternalServiceError):
            await service.get_or_create_user("session-1")

    @pytest.mark.asyncio
    async def test_reread_failure_after_lost_race(self, service, user_repo):
        calls = {"n": 0}

        def miss_then_fail(session_id):
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            raise RuntimeError("connection reset")

        user_repo.get_by_session_id = miss_then_fail
        user_repo.fail_on.add("create")

        with pytest.raises(ExternalServiceError, match="Failed to create user"):
            await service.get_or_create_user("session-1")


class TestLinkEmail:
    @pytest.mark.asyncio
    async def test_claims_user_and_clears_expiration(self, service, user_repo, image_repo):
        anon = user_repo.add("session-1")
        image_repo.add(anon.id, expires_at=_expires())
        image_repo.add(anon.id, expires_at=_expires())

        user = await service.link_email_to_user("session-1", "a@example.com")

        assert user.email == "a@example.com"
        assert user.email_verified is True
        assert user.is_claimed is True
        assert all(i.expires_at is None for i in image_repo.owned_by(anon.id))

    @pytest.mark.asyncio
    async def test_relinking_same_session_is_allowed(self, service, user_repo):
        user_repo.add("session-1", email="a@example.com", email_verified=True)
        user = await service.link_email_to_user("session-1", "a@example.com")
        assert user.email == "a@example.com"

    @pytest.mark.asyncio
    async def test_email_in_use_by_other_session(self, service, user_repo, image_repo):
        user_repo.add("session-other", email="a@example.com", email_verified=True)
        anon = user_repo.add("session-1")
        image = image_repo.add(anon.id, expires_at=_expires())

        with pytest.raises(EmailInUseError):
            await service.link_email_to_user("session-1", "a@example.com")

        assert user_repo.rows[anon.id].email is None
        assert image_repo.rows[image.id].expires_at is not None

    @pytest.mark.asyncio
    async def test_unknown_session(self, service):
        with pytest.raises(UserNotFoundError):
            await service.link_email_to_user("missing", "a@example.com")

    @pytest.mark.asyncio
    async def test_update_failure(self, service, user_repo):
        user_repo.add("session-1")
        user_repo.fail_on.add("link_email")
        with pytest.raises(LinkEmailError):
            await service.link_email_to_user("session-1", "a@example.com")

    @pytest.mark.asyncio
    async def test_expiration_clearing_is_best_effort(self, service, user_repo, image_repo):
        user_repo.add("session-1")
        image_repo.fail_on.add("clear_expiration")

        user = await service.link_email_to_user("session-1", "a@example.com")
        assert user.email_verified is True


class TestRecover:
    @pytest.mark.asyncio
    async def test_verified_account(self, service, user_repo):
        user_repo.add("s", email="a@example.com", email_verified=True)
        assert await service.recover_by_email("a@example.com") == RECOVERY_MESSAGE

    @pytest.mark.asyncio
    async def test_unverified_account_is_not_found(self, service, user_repo):
        user_repo.add("s", email="a@example.com", email_verified=False)
        with pytest.raises(AccountNotFoundError):
            await service.recover_by_email("a@example.com")

    @pytest.mark.asyncio
    async def test_unknown_email(self, service):
        with pytest.raises(AccountNotFoundError):
            await service.recover_by_email("nobody@example.com")


class TestReconcileAuthUser:
    @pytest.mark.asyncio
    async def test_creates_verified_user(self, service, user_repo):
        user = await service.reconcile_auth_user("auth-1", "a@example.com")

        assert user.session_id == "auth-1"
        assert user.email == "a@example.com"
        assert user.email_verified is True
        assert len(user_repo.rows) == 1

    @pytest.mark.asyncio
    async def test_binds_existing_row(self, service, user_repo, image_repo):
        existing = user_repo.add("session-1", email="a@example.com")
        image_repo.add(existing.id, expires_at=_expires())

        user = await service.reconcile_auth_user("auth-1", "a@example.com")

        assert user.id == existing.id
        assert user_repo.rows[existing.id].session_id == "auth-1"
        assert user_repo.rows[existing.id].email_verified is True
        assert image_repo.owned_by(existing.id)[0].expires_at is None

    @pytest.mark.asyncio
    async def test_create_failure(self, service, user_repo):
        user_repo.fail_on.add("create")
        with pytest.raises(ExternalServiceError):
            await service.reconcile_auth_user("auth-1", "a@example.com")


class TestGetUserForIdentity:
    @pytest.mark.asyncio
    async def test_bound_user(self, service, user_repo):
        bound = user_repo.add("auth-1", email="a@example.com", email_verified=True)
        user = await service.get_user_for_identity("auth-1", "a@example.com")
        assert user.id == bound.id

    @pytest.mark.asyncio
    async def test_reconciles_on_first_use(self, service, user_repo):
        user = await service.get_user_for_identity("auth-1", "a@example.com")
        assert user.session_id == "auth-1"

    @pytest.mark.asyncio
    async def test_unknown_without_email(self, service):
        with pytest.raises(UserNotFoundError):
            await service.get_user_for_identity("auth-1", None)

    @pytest.mark.asyncio
    async def test_lookup_failure(self, service, user_repo):
        user_repo.fail_on.add("get_by_session_id")
        with pytest.raises(ExternalServiceError):
            await service.get_user_for_identity("auth-1", "a@example.com")


class TestMerge:
    @pytest.mark.asyncio
    async def test_moves_everything_to_new_auth_user(self, service, user_repo, image_repo):
        anon = user_repo.add("anon-session")
        images = [image_repo.add(anon.id, expires_at=_expires()) for _ in range(3)]

        result = await service.merge_anonymous_to_auth_user("anon-session", "auth-1", "a@example.com")

        assert result.success is True
        assert result.completed is True
        assert result.transferred is True
        assert result.anonymous_user_id == anon.id
        assert anon.id not in user_repo.rows

        auth_user = user_repo.rows[result.user_id]
        assert auth_user.session_id == "auth-1"
        assert auth_user.email_verified is True

        owned = image_repo.owned_by(auth_user.id)
        assert {i.id for i in owned} == {i.id for i in images}
        assert all(i.expires_at is None for i in owned)

    @pytest.mark.asyncio
    async def test_merges_into_existing_email_owner(self, service, user_repo, image_repo):
        existing = user_repo.add("old-session", email="a@example.com", email_verified=True)
        old_image = image_repo.add(existing.id)
        anon = user_repo.add("anon-session")
        new_image = image_repo.add(anon.id, expires_at=_expires())

        result = await service.merge_anonymous_to_auth_user("anon-session", "auth-1", "a@example.com")

        assert result.user_id == existing.id
        assert user_repo.rows[existing.id].session_id == "auth-1"
        assert {i.id for i in image_repo.owned_by(existing.id)} == {old_image.id, new_image.id}
        assert anon.id not in user_repo.rows

    @pytest.mark.asyncio
    async def test_unknown_anonymous_session(self, service, user_repo):
        result = await service.merge_anonymous_to_auth_user("nobody", "auth-1", "a@example.com")

        assert result.completed is True
        assert result.transferred is False
        assert result.anonymous_user_id is None
        assert len(user_repo.rows) == 1

    @pytest.mark.asyncio
    async def test_is_idempotent(self, service, user_repo, image_repo):
        anon = user_repo.add("anon-session")
        image_repo.add(anon.id, expires_at=_expires())

        first = await service.merge_anonymous_to_auth_user("anon-session", "auth-1", "a@example.com")
        second = await service.merge_anonymous_to_auth_user("anon-session", "auth-1", "a@example.com")

        assert second.completed is True
        assert second.user_id == first.user_id
        assert len(user_repo.rows) == 1
        assert len(image_repo.owned_by(first.user_id)) == 1

    @pytest.mark.asyncio
    async def test_same_row_is_not_deleted(self, service, user_repo, image_repo):
        """Anonymous session that already belongs to the email owner."""
        user = user_repo.add("session-1", email="a@example.com")
        image_repo.add(user.id, expires_at=_expires())

        result = await service.merge_anonymous_to_auth_user("session-1", "auth-1", "a@example.com")

        assert result.completed is True
        assert user.id in user_repo.rows
        assert image_repo.owned_by(user.id)[0].expires_at is None

    @pytest.mark.asyncio
    async def test_failed_transfer_keeps_anonymous_row(self, user_repo, image_repo):
        service = IdentityService(users=user_repo, images=image_repo, max_merge_attempts=1)
        anon = user_repo.add("anon-session")
        image = image_repo.add(anon.id, expires_at=_expires())
        image_repo.fail_on.add("reassign_owner")

        result = await service.merge_anonymous_to_auth_user("anon-session", "auth-1", "a@example.com")

        assert result.success is True
        assert result.completed is False
        assert MergeStep.TRANSFER_IMAGES in result.failed_steps
        assert MergeStep.DELETE_ANONYMOUS in result.failed_steps
        assert anon.id in user_repo.rows
        assert image.id in image_repo.rows

    @pytest.mark.asyncio
    async def test_retries_incomplete_merge(self, service, user_repo, image_repo):
        anon = user_repo.add("anon-session")
        image_repo.add(anon.id, expires_at=_expires())

        real_delete = user_repo.delete
        calls = {"n": 0}

        def flaky_delete(user_id):
            calls["n"] += 1
            if calls["n"] == 1:
                raise RuntimeError("connection reset")
            real_delete(user_id)

        user_repo.delete = flaky_delete

        result = await service.merge_anonymous_to_auth_user("anon-session", "auth-1", "a@example.com")

        assert result.completed is True
        assert result.attempts == 2
        assert result.transferred is True
        assert anon.id not in user_repo.rows

    @pytest.mark.asyncio
    async def test_auth_user_lookup_failure(self, service, user_repo):
        user_repo.add("anon-session")
        user_repo.fail_on.add("get_by_email")

        result = await service.merge_anonymous_to_auth_user("anon-session", "auth-1", "a@example.com")

        assert result.success is False
        assert result.error == "Failed to find user"
        assert MergeStep.BIND_AUTH_USER in result.failed_steps

    @pytest.mark.asyncio
    async def test_auth_user_create_failure(self, service, user_repo):
        user_repo.fail_on.add("create")

        result = await service.merge_anonymous_to_auth_user("anon-session", "auth-1", "a@example.com")

        assert result.success is False
        assert result.error == "Failed to create user"
