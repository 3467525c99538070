from __future__ import annotations

from datetime import date

import pytest

from fakes import FakeLeaveRepo, caller_for
from smart_attendance.core.enums import LeaveStatus
from smart_attendance.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from smart_attendance.permissions.service import LeaveService


@pytest.fixture
def service(users, fixed_now):
    return LeaveService(FakeLeaveRepo(users), users, clock=lambda: fixed_now)


def _ask(service, student, approver, reason="Fever"):
    return service.request_leave(
        caller_for(student),
        faculty_id=approver.user_id,
        reason=reason,
        start_date=date(2026, 3, 5),
        end_date=date(2026, 3, 6),
    )


def test_request_then_approve(service, people, fixed_now):
    request = _ask(service, people.alice, people.faculty)
    assert request.status == LeaveStatus.PENDING

    decided = service.decide(caller_for(people.faculty), request.request_id, "Approved")
    assert decided.status == LeaveStatus.APPROVED
    assert decided.decided_at == fixed_now


def test_decision_is_final(service, people):
    request = _ask(service, people.alice, people.faculty)
    service.decide(caller_for(people.faculty), request.request_id, "rejected")

    with pytest.raises(ConflictError, match="already rejected"):
        service.decide(caller_for(people.faculty), request.request_id, "approved")
    with pytest.raises(ConflictError):
        service.decide(caller_for(people.admin), request.request_id, "approved")


class LosingLeaveRepo(FakeLeaveRepo):
    """Another approver gets there between the read and the conditional update."""

    def decide(self, request_id, *, status, decided_at):
        super().decide(request_id, status=LeaveStatus.REJECTED, decided_at=decided_at)
        return super().decide(request_id, status=status, decided_at=decided_at)


def test_concurrent_decision_is_a_conflict(users, people, fixed_now):
    service = LeaveService(LosingLeaveRepo(users), users, clock=lambda: fixed_now)
    request = _ask(service, people.alice, people.faculty)

    with pytest.raises(ConflictError, match="concurrently"):
        service.decide(caller_for(people.faculty), request.request_id, "approved")
    assert service.my_requests(caller_for(people.alice))[0].status == LeaveStatus.REJECTED


def test_only_the_addressed_faculty_decides(service, people):
    request = _ask(service, people.alice, people.faculty)
    with pytest.raises(AuthorizationError):
        service.decide(caller_for(people.other_faculty), request.request_id, "approved")
    with pytest.raises(AuthorizationError):
        service.decide(caller_for(people.bob), request.request_id, "approved")


def test_incharge_decides_only_own_department(service, people):
    cse = _ask(service, people.alice, people.faculty)
    ece = _ask(service, people.carol, people.faculty)

    incharge = caller_for(people.incharge)
    assert service.decide(incharge, cse.request_id, "approved").status == LeaveStatus.APPROVED
    with pytest.raises(AuthorizationError):
        service.decide(incharge, ece.request_id, "approved")


@pytest.mark.parametrize("status", ["pending", "maybe", None])
def test_decision_must_be_approve_or_reject(service, people, status):
    request = _ask(service, people.alice, people.faculty)
    with pytest.raises(ValidationError):
        service.decide(caller_for(people.faculty), request.request_id, status)


def test_request_validation(service, people):
    alice = caller_for(people.alice)
    with pytest.raises(NotFoundError):
        _ask(service, people.alice, people.bob)
    with pytest.raises(ValidationError):
        service.request_leave(
            alice,
            faculty_id=people.faculty.user_id,
            reason=" ",
            start_date=date(2026, 3, 5),
            end_date=date(2026, 3, 5),
        )
    with pytest.raises(ValidationError):
        service.request_leave(
            alice,
            faculty_id=people.faculty.user_id,
            reason="Trip",
            start_date=date(2026, 3, 6),
            end_date=date(2026, 3, 5),
        )
    with pytest.raises(AuthorizationError):
        _ask(service, people.faculty, people.other_faculty)


def test_listing_is_scoped(service, people):
    _ask(service, people.alice, people.faculty)
    _ask(service, people.bob, people.other_faculty)
    _ask(service, people.carol, people.faculty)

    assert {r.student_id for r in service.list_requests(caller_for(people.alice))} == {people.alice.user_id}
    assert len(service.list_requests(caller_for(people.faculty))) == 2
    assert len(service.list_requests(caller_for(people.incharge))) == 2
    assert len(service.list_requests(caller_for(people.admin), status="pending")) == 3
    assert service.list_requests(caller_for(people.admin), status="approved") == []
    assert len(service.my_requests(caller_for(people.bob))) == 1
