"""
Tests for the login rate limiter.

Tests:
- Attempt counting and the rate-limit window
- Escalation to suspension and its expiry
- Test account bypass and key normalization
- Sweep of expired records
"""

import asyncio

import pytest

from app.infrastructure.auth.models import LockState


def fail(limiter, identifier, times):
    for _ in range(times):
        limiter.record_failure(identifier)


@pytest.mark.security
class TestAttemptCounting:

    def test_fresh_identifier_is_ok(self, limiter):
        status = limiter.check("parent55")
        assert status.is_ok
        assert status.remaining_minutes is None

    def test_below_threshold_is_ok(self, limiter):
        fail(limiter, "parent55", 4)
        assert limiter.check("parent55").is_ok
        assert limiter.get_attempts("parent55").count == 4

    def test_threshold_rate_limits_with_remaining_minutes(self, limiter, clock):
        fail(limiter, "parent55", 5)
        status = limiter.check("parent55")
        assert status.state is LockState.RATE_LIMITED
        assert status.remaining_minutes == 15

        clock.advance(10 * 60 + 30)
        status = limiter.check("parent55")
        assert status.state is LockState.RATE_LIMITED
        assert status.remaining_minutes == 5

    def test_window_elapse_lifts_rate_limit(self, limiter, clock):
        fail(limiter, "parent55", 5)
        clock.advance_minutes(15)
        assert limiter.check("parent55").is_ok

    def test_keys_are_normalized(self, limiter):
        fail(limiter, "  Parent55 ", 3)
        fail(limiter, "PARENT55", 2)
        assert limiter.get_attempts("parent55").count == 5
        assert limiter.check("parent55").state is LockState.RATE_LIMITED

    def test_failure_at_threshold_inside_window_is_a_violation(self, limiter):
        fail(limiter, "parent55", 5)
        assert limiter.violation_count("parent55") == 0

        limiter.record_failure("parent55")
        assert limiter.violation_count("parent55") == 1
        assert limiter.get_attempts("parent55").count == 6

    def test_failure_after_window_is_not_a_violation(self, limiter, clock):
        fail(limiter, "parent55", 5)
        clock.advance_minutes(16)
        limiter.record_failure("parent55")
        assert limiter.violation_count("parent55") == 0
        assert limiter.get_attempts("parent55").count == 1
        assert limiter.check("parent55").is_ok

    def test_clear_removes_attempts_and_violations(self, limiter):
        fail(limiter, "parent55", 6)
        limiter.clear("parent55")
        assert limiter.get_attempts("parent55") is None
        assert limiter.violation_count("parent55") == 0
        assert limiter.check("parent55").is_ok


@pytest.mark.security
class TestSuspension:

    def test_max_violations_suspends(self, limiter):
        for _ in range(3):
            limiter.add_violation("parent55")
        assert limiter.check("parent55").state is LockState.SUSPENDED

    def test_suspension_survives_rate_limit_window(self, limiter, clock):
        fail(limiter, "parent55", 5)
        for _ in range(3):
            limiter.add_violation("parent55")
        clock.advance_minutes(20)
        assert limiter.check("parent55").state is LockState.SUSPENDED

    def test_suspension_expires_with_violation_window(self, limiter, clock):
        for _ in range(3):
            limiter.add_violation("parent55")
        clock.advance_minutes(60)
        assert limiter.check("parent55").is_ok

    def test_suspension_checked_before_rate_limit(self, limiter):
        fail(limiter, "parent55", 5)
        for _ in range(3):
            limiter.add_violation("parent55")
        assert limiter.check("parent55").state is LockState.SUSPENDED


@pytest.mark.security
class TestTestAccounts:

    @pytest.mark.parametrize("identifier", ["student", "Teacher", "ADMIN", "parent", "superadmin"])
    def test_allowlisted_identifiers_are_never_counted(self, limiter, identifier):
        fail(limiter, identifier, 20)
        assert limiter.get_attempts(identifier) is None
        assert limiter.check(identifier).is_ok

    def test_allowlisted_identifiers_ignore_violations(self, limiter):
        for _ in range(5):
            limiter.add_violation("admin")
        assert limiter.check("admin").is_ok


class TestSweep:

    def test_sweep_drops_expired_attempts(self, limiter, clock):
        fail(limiter, "old", 2)
        clock.advance_minutes(10)
        fail(limiter, "recent", 1)
        clock.advance_minutes(6)

        removed = limiter.sweep()

        assert removed["attempts_removed"] == 1
        assert limiter.get_attempts("old") is None
        assert limiter.get_attempts("recent").count == 1

    def test_sweep_and_check_agree_at_window_boundary(self, limiter, clock):
        fail(limiter, "parent55", 5)
        clock.advance_minutes(15)

        assert limiter.check("parent55").is_ok
        assert limiter.sweep()["attempts_removed"] == 1
        assert limiter.get_attempts("parent55") is None

    def test_sweep_prunes_violation_timestamps(self, limiter, clock):
        limiter.add_violation("parent55")
        clock.advance_minutes(40)
        limiter.add_violation("parent55")
        limiter.add_violation("other")
        clock.advance_minutes(30)

        removed = limiter.sweep()

        assert removed["violations_removed"] == 0
        assert limiter.violation_count("parent55") == 1
        assert limiter.violation_count("other") == 1

        clock.advance_minutes(40)
        removed = limiter.sweep()
        assert removed["violations_removed"] == 2

    def test_sweep_is_idempotent(self, limiter, clock):
        fail(limiter, "parent55", 1)
        clock.advance_minutes(20)
        limiter.sweep()
        assert limiter.sweep() == {"attempts_removed": 0, "violations_removed": 0}

    @pytest.mark.asyncio
    async def test_run_sweeper_sweeps_until_cancelled(self, limiter, mocker):
        sweep = mocker.spy(limiter, "sweep")
        task = asyncio.create_task(limiter.run_sweeper(0.01))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert sweep.call_count >= 1
