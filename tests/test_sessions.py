"""Tests for the resume-session lifecycle manager.

Verifies that:
  - Issuing twice for one applicant converges on a single row and token
  - A fresh session validates and its expiry slides forward
  - Every failure branch raises SessionFailure with the right reason
  - Failure branches 3-8 delete the row (fail-closed), so a retry with
    the same token can only see ``not_found_or_mismatch``
  - revoke_all and purge_stale behave as the cleanup paths expect

Defines MockApplicantRow / MockSessionRow / MockRepository and FakeClock,
which the other test modules reuse.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import pytest

from onboarding_flow.config import FlowSettings
from onboarding_flow.errors import SessionFailure, SessionFailureReason
from onboarding_flow.interfaces import OnboardingStore
from onboarding_flow.sessions import SessionLifecycleManager, new_token
from onboarding_flow.stages import StageId

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


# =====================================================================
# Mock infrastructure
# =====================================================================


class FakeClock:
    """Controllable clock; call it to read, ``advance()`` to move it."""

    def __init__(self, start: datetime = T0):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


@dataclass
class MockApplicantRow:
    """In-memory stand-in for the Applicant ORM model."""

    id: uuid.UUID = field(default_factory=uuid.uuid4)
    current_stage: str = StageId.PREQUALIFICATIONS.value
    completed: bool = False
    completed_at: datetime | None = None
    needs_flatbed_training: bool = False
    terminated: bool = False
    terminated_at: datetime | None = None
    resume_expires_at: datetime | None = T0 + timedelta(days=30)


@dataclass
class MockSessionRow:
    """In-memory stand-in for the ResumeSession ORM model."""

    applicant_id: uuid.UUID
    token: str
    expires_at: datetime
    last_used_at: datetime
    revoked: bool = False
    id: uuid.UUID = field(default_factory=uuid.uuid4)


class MockRepository(OnboardingStore):
    """In-memory OnboardingRepository replacement.

    Sessions are keyed by applicant id, mirroring the UNIQUE constraint the
    real upsert conflicts on.
    """

    def __init__(self):
        self._applicants: dict[uuid.UUID, MockApplicantRow] = {}
        self._sessions: dict[uuid.UUID, MockSessionRow] = {}

    def seed(self, **kwargs) -> MockApplicantRow:
        row = MockApplicantRow(**kwargs)
        self._applicants[row.id] = row
        return row

    # --- Applicants ---

    async def create_applicant(self, db, *, first_stage, options, resume_expires_at):
        return self.seed(
            current_stage=first_stage.value,
            needs_flatbed_training=options.needs_flatbed_training,
            resume_expires_at=resume_expires_at,
        )

    async def get_applicant(self, db, applicant_id):
        return self._applicants.get(applicant_id)

    async def save_applicant_status(self, db, applicant, status):
        stage = status.current_stage
        applicant.current_stage = getattr(stage, "value", stage)
        applicant.completed = status.completed
        applicant.completed_at = status.completed_at
        return applicant

    async def save_flow_options(self, db, applicant, options):
        applicant.needs_flatbed_training = options.needs_flatbed_training
        return applicant

    async def extend_resume_deadline(self, db, applicant, resume_expires_at):
        applicant.resume_expires_at = resume_expires_at
        return applicant

    async def mark_terminated(self, db, applicant, *, at):
        applicant.terminated = True
        applicant.terminated_at = at
        return applicant

    # --- Sessions ---

    async def upsert_session(self, db, *, applicant_id, token, expires_at, last_used_at):
        existing = self._sessions.get(applicant_id)
        if existing is not None:
            # Rejected rows are re-keyed, live ones keep their token
            if existing.revoked or existing.expires_at <= last_used_at:
                existing.token = token
            existing.expires_at = expires_at
            existing.last_used_at = last_used_at
            existing.revoked = False
            return existing
        row = MockSessionRow(
            applicant_id=applicant_id,
            token=token,
            expires_at=expires_at,
            last_used_at=last_used_at,
        )
        self._sessions[applicant_id] = row
        return row

    async def get_session(self, db, *, token, applicant_id):
        row = self._sessions.get(applicant_id)
        if row is not None and row.token == token:
            return row
        return None

    async def delete_session(self, db, session):
        if self._sessions.get(session.applicant_id) is session:
            del self._sessions[session.applicant_id]

    async def touch_session(self, db, session, *, expires_at, last_used_at):
        session.expires_at = expires_at
        session.last_used_at = last_used_at
        return session

    async def revoke_sessions(self, db, applicant_id):
        row = self._sessions.get(applicant_id)
        if row is None or row.revoked:
            return 0
        row.revoked = True
        return 1

    async def purge_stale_sessions(self, db, *, now, grace_days=0):
        cutoff = now - timedelta(days=grace_days)
        stale = [
            aid for aid, row in self._sessions.items()
            if row.revoked or row.expires_at <= cutoff
        ]
        for aid in stale:
            del self._sessions[aid]
        return len(stale)


# =====================================================================
# Fixtures
# =====================================================================


@pytest.fixture
def manager(mock_repo, clock):
    return SessionLifecycleManager(mock_repo, FlowSettings(), clock=clock)


@pytest.fixture
def applicant(mock_repo):
    return mock_repo.seed()


async def _issue(manager, mock_db, applicant):
    issued = await manager.create_or_reuse_session(mock_db, applicant.id)
    return issued.token


# =====================================================================
# Issue
# =====================================================================


class TestCreateOrReuse:
    """Session issuance and the one-row-per-applicant invariant."""

    @pytest.mark.asyncio
    async def test_new_session_expires_after_ttl(self, manager, mock_db, applicant, clock):
        issued = await manager.create_or_reuse_session(mock_db, applicant.id)
        assert issued.session.expires_at == clock() + timedelta(hours=6)
        assert issued.session.last_used_at == clock()
        assert issued.session.revoked is False

    @pytest.mark.asyncio
    async def test_second_call_reuses_single_row(self, manager, mock_db, mock_repo, applicant):
        """Two issues before either token is used leave exactly one row."""
        first = await manager.create_or_reuse_session(mock_db, applicant.id)
        second = await manager.create_or_reuse_session(mock_db, applicant.id)

        rows = [r for r in mock_repo._sessions.values() if r.applicant_id == applicant.id]
        assert len(rows) == 1, "Applicant must have exactly one session row"
        assert first.token == second.token, "Concurrent issuers must converge on one token"

    @pytest.mark.asyncio
    async def test_reissue_after_revoke_rotates_token(
        self, manager, mock_db, applicant,
    ):
        """A token revoked at logout stays dead after the next issue."""
        old = await _issue(manager, mock_db, applicant)
        await manager.revoke_all(mock_db, applicant.id)

        issued = await manager.create_or_reuse_session(mock_db, applicant.id)
        assert issued.session.revoked is False
        assert issued.token != old

        with pytest.raises(SessionFailure) as exc_info:
            await manager.validate_and_slide(mock_db, applicant.id, old)
        assert exc_info.value.reason is SessionFailureReason.NOT_FOUND_OR_MISMATCH
        await manager.validate_and_slide(mock_db, applicant.id, issued.token)

    @pytest.mark.asyncio
    async def test_reissue_after_expiry_rotates_token(
        self, manager, mock_db, applicant, clock,
    ):
        old = await _issue(manager, mock_db, applicant)
        clock.advance(hours=6)

        issued = await manager.create_or_reuse_session(mock_db, applicant.id)
        assert issued.token != old
        assert issued.session.expires_at == clock() + timedelta(hours=6)

    def test_token_format(self):
        token = new_token()
        assert len(token) >= 32
        assert token != new_token()


# =====================================================================
# Validate and slide
# =====================================================================


class TestValidateAndSlide:
    """The happy path and the sliding window."""

    @pytest.mark.asyncio
    async def test_round_trip_slides_expiry(self, manager, mock_db, applicant, clock):
        issued = await manager.create_or_reuse_session(mock_db, applicant.id)
        created_expiry = issued.session.expires_at

        clock.advance(seconds=1)
        validated = await manager.validate_and_slide(mock_db, applicant.id, issued.token)

        assert validated.session.expires_at > created_expiry
        assert validated.session.expires_at == clock() + timedelta(hours=6)
        assert validated.session.last_used_at == clock()
        assert validated.token == issued.token
        assert validated.record is applicant

    @pytest.mark.asyncio
    async def test_accepts_string_applicant_id(self, manager, mock_db, applicant):
        token = await _issue(manager, mock_db, applicant)
        validated = await manager.validate_and_slide(mock_db, str(applicant.id), token)
        assert validated.view.id == applicant.id

    @pytest.mark.asyncio
    async def test_regular_use_outlives_single_ttl(self, manager, mock_db, applicant, clock):
        """Uses spaced under the TTL keep the session alive indefinitely."""
        token = await _issue(manager, mock_db, applicant)
        for _ in range(4):
            clock.advance(hours=5)
            await manager.validate_and_slide(mock_db, applicant.id, token)
        # 20 hours in, well past one 6-hour window
        validated = await manager.validate_and_slide(mock_db, applicant.id, token)
        assert validated.session.expires_at == clock() + timedelta(hours=6)


class TestValidationFailures:
    """Each failure branch, in check order."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", [None, "", "short", "has spaces in it " * 3, "x" * 200])
    async def test_malformed_token(self, manager, mock_db, applicant, token):
        with pytest.raises(SessionFailure) as exc_info:
            await manager.validate_and_slide(mock_db, applicant.id, token)
        assert exc_info.value.reason is SessionFailureReason.INVALID_TOKEN

    @pytest.mark.asyncio
    @pytest.mark.parametrize("applicant_id", [None, "", "not-a-uuid"])
    async def test_malformed_applicant_id(self, manager, mock_db, applicant_id):
        with pytest.raises(SessionFailure) as exc_info:
            await manager.validate_and_slide(mock_db, applicant_id, new_token())
        assert exc_info.value.reason is SessionFailureReason.INVALID_TOKEN

    @pytest.mark.asyncio
    async def test_unknown_token(self, manager, mock_db, applicant):
        await _issue(manager, mock_db, applicant)
        with pytest.raises(SessionFailure) as exc_info:
            await manager.validate_and_slide(mock_db, applicant.id, new_token())
        assert exc_info.value.reason is SessionFailureReason.NOT_FOUND_OR_MISMATCH

    @pytest.mark.asyncio
    async def test_token_bound_to_other_applicant(self, manager, mock_db, mock_repo, applicant):
        token = await _issue(manager, mock_db, applicant)
        other = mock_repo.seed()
        with pytest.raises(SessionFailure) as exc_info:
            await manager.validate_and_slide(mock_db, other.id, token)
        assert exc_info.value.reason is SessionFailureReason.NOT_FOUND_OR_MISMATCH
        # The rightful owner is unaffected
        await manager.validate_and_slide(mock_db, applicant.id, token)

    @pytest.mark.asyncio
    async def test_expired_at_exact_boundary(self, manager, mock_db, applicant, clock):
        token = await _issue(manager, mock_db, applicant)
        clock.advance(hours=6)
        with pytest.raises(SessionFailure) as exc_info:
            await manager.validate_and_slide(mock_db, applicant.id, token)
        assert exc_info.value.reason is SessionFailureReason.EXPIRED

    @pytest.mark.asyncio
    async def test_revoked_checked_before_expiry(self, manager, mock_db, applicant, clock):
        token = await _issue(manager, mock_db, applicant)
        await manager.revoke_all(mock_db, applicant.id)
        clock.advance(hours=7)
        with pytest.raises(SessionFailure) as exc_info:
            await manager.validate_and_slide(mock_db, applicant.id, token)
        assert exc_info.value.reason is SessionFailureReason.REVOKED

    @pytest.mark.asyncio
    async def test_record_expired_when_deadline_missing(self, manager, mock_db, applicant):
        token = await _issue(manager, mock_db, applicant)
        applicant.resume_expires_at = None
        with pytest.raises(SessionFailure) as exc_info:
            await manager.validate_and_slide(mock_db, applicant.id, token)
        assert exc_info.value.reason is SessionFailureReason.RECORD_EXPIRED

    @pytest.mark.asyncio
    async def test_terminated_checked_before_deadline(self, manager, mock_db, applicant, clock):
        token = await _issue(manager, mock_db, applicant)
        applicant.terminated = True
        applicant.terminated_at = clock()
        applicant.resume_expires_at = clock() - timedelta(days=1)
        with pytest.raises(SessionFailure) as exc_info:
            await manager.validate_and_slide(mock_db, applicant.id, token)
        assert exc_info.value.reason is SessionFailureReason.TERMINATED


def _make_revoked(applicant, clock, mock_repo):
    mock_repo._sessions[applicant.id].revoked = True


def _make_expired(applicant, clock, mock_repo):
    clock.advance(hours=6, seconds=1)


def _make_record_missing(applicant, clock, mock_repo):
    del mock_repo._applicants[applicant.id]


def _make_terminated(applicant, clock, mock_repo):
    applicant.terminated = True
    applicant.terminated_at = clock()


def _make_record_expired(applicant, clock, mock_repo):
    applicant.resume_expires_at = clock() - timedelta(seconds=1)


def _make_completed(applicant, clock, mock_repo):
    applicant.current_stage = StageId.DRUG_TEST.value
    applicant.completed = True
    applicant.completed_at = clock()


class TestFailClosed:
    """Rejected rows are deleted before the failure is reported."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "breaker, reason",
        [
            (_make_revoked, SessionFailureReason.REVOKED),
            (_make_expired, SessionFailureReason.EXPIRED),
            (_make_record_missing, SessionFailureReason.RECORD_NOT_FOUND),
            (_make_terminated, SessionFailureReason.TERMINATED),
            (_make_record_expired, SessionFailureReason.RECORD_EXPIRED),
            (_make_completed, SessionFailureReason.ALREADY_COMPLETED),
        ],
    )
    async def test_retry_after_failure_sees_no_row(
        self, manager, mock_db, mock_repo, applicant, clock, breaker, reason,
    ):
        token = await _issue(manager, mock_db, applicant)
        breaker(applicant, clock, mock_repo)

        with pytest.raises(SessionFailure) as first:
            await manager.validate_and_slide(mock_db, applicant.id, token)
        assert first.value.reason is reason
        assert applicant.id not in mock_repo._sessions, "Row must be deleted"

        with pytest.raises(SessionFailure) as second:
            await manager.validate_and_slide(mock_db, applicant.id, token)
        assert second.value.reason is SessionFailureReason.NOT_FOUND_OR_MISMATCH

    @pytest.mark.asyncio
    async def test_failure_message_is_client_facing(self, manager, mock_db, applicant):
        token = await _issue(manager, mock_db, applicant)
        applicant.terminated = True
        applicant.terminated_at = T0
        with pytest.raises(SessionFailure) as exc_info:
            await manager.validate_and_slide(mock_db, applicant.id, token)
        assert exc_info.value.message == "onboarding terminated"
        assert str(exc_info.value) == "onboarding terminated"


# =====================================================================
# Revoke & purge
# =====================================================================


class TestRevokeAndPurge:

    @pytest.mark.asyncio
    async def test_revoke_all_counts_active_sessions(self, manager, mock_db, applicant):
        await _issue(manager, mock_db, applicant)
        assert await manager.revoke_all(mock_db, applicant.id) == 1
        assert await manager.revoke_all(mock_db, applicant.id) == 0

    @pytest.mark.asyncio
    async def test_purge_removes_revoked_and_expired(
        self, manager, mock_db, mock_repo, clock,
    ):
        live, revoked, expired = mock_repo.seed(), mock_repo.seed(), mock_repo.seed()
        await _issue(manager, mock_db, expired)
        clock.advance(hours=5)
        await _issue(manager, mock_db, live)
        await _issue(manager, mock_db, revoked)
        await manager.revoke_all(mock_db, revoked.id)
        clock.advance(hours=2)

        assert await manager.purge_stale(mock_db) == 2
        assert set(mock_repo._sessions) == {live.id}

    @pytest.mark.asyncio
    async def test_purge_grace_keeps_recently_expired(
        self, manager, mock_db, mock_repo, applicant, clock,
    ):
        await _issue(manager, mock_db, applicant)
        clock.advance(days=1)
        assert await manager.purge_stale(mock_db, grace_days=2) == 0
        clock.advance(days=2)
        assert await manager.purge_stale(mock_db, grace_days=2) == 1
