from __future__ import annotations

import pytest

from smart_attendance.access.gate import (
    Caller,
    Capability,
    RecordFilter,
    authorize,
    check_account_scope,
    narrow,
    require_self_or_staff,
    student_in_scope,
)
from smart_attendance.core.enums import Role
from smart_attendance.core.exceptions import AuthorizationError

STUDENT = Caller(user_id="s1", role=Role.STUDENT, department="CSE", class_name="A")
FACULTY = Caller(user_id="f1", role=Role.FACULTY, email="ravi.kumar@vishnu.edu.in")
INCHARGE = Caller(user_id="i1", role=Role.INCHARGE, department="CSE")
ADMIN = Caller(user_id="a1", role=Role.ADMIN)


def test_student_filter_is_replaced_not_merged():
    scope = narrow(STUDENT, RecordFilter(student_id="s2", department="ECE"))
    assert scope == RecordFilter(student_id="s1")


def test_faculty_is_pinned_to_own_periods():
    scope = narrow(FACULTY, RecordFilter(student_id="s2", department="ECE"))
    assert scope.staff_id == "f1"
    assert scope.staff_email == "ravi.kumar@vishnu.edu.in"
    assert scope.student_id == "s2"
    assert scope.department is None
    assert scope.by_staff


def test_incharge_is_pinned_to_department():
    scope = narrow(INCHARGE, RecordFilter(department="ECE", class_name="B"))
    assert scope.department == "CSE"
    assert scope.class_name == "B"

    class_incharge = Caller(user_id="i2", role=Role.INCHARGE, department="CSE", class_name="A")
    assert narrow(class_incharge, RecordFilter(class_name="B")).class_name == "A"


def test_incharge_without_department_is_forbidden():
    with pytest.raises(AuthorizationError):
        narrow(Caller(user_id="i3", role=Role.INCHARGE))


def test_admin_gets_requested_filter():
    requested = RecordFilter(student_id="s9", department="MECH")
    assert narrow(ADMIN, requested) == requested
    assert narrow(ADMIN) == RecordFilter()


def test_authorize_by_role():
    authorize(FACULTY, Capability.MARK_ATTENDANCE)
    authorize(STUDENT, Capability.REQUEST_LEAVE)
    with pytest.raises(AuthorizationError):
        authorize(STUDENT, Capability.MARK_ATTENDANCE)
    with pytest.raises(AuthorizationError):
        authorize(FACULTY, Capability.UPLOAD_ATTENDANCE)
    with pytest.raises(AuthorizationError):
        authorize(INCHARGE, Capability.CHANGE_ROLE)


def test_students_report_only_on_themselves():
    assert require_self_or_staff(STUDENT, None) == "s1"
    assert require_self_or_staff(STUDENT, "s1") == "s1"
    with pytest.raises(AuthorizationError):
        require_self_or_staff(STUDENT, "s2")
    assert require_self_or_staff(FACULTY, "s2") == "s2"


def test_incharge_manages_only_own_students():
    check_account_scope(INCHARGE, target_role=Role.STUDENT, target_department="CSE")
    with pytest.raises(AuthorizationError):
        check_account_scope(INCHARGE, target_role=Role.FACULTY, target_department="CSE")
    with pytest.raises(AuthorizationError):
        check_account_scope(INCHARGE, target_role=Role.STUDENT, target_department="ECE")
    with pytest.raises(AuthorizationError):
        check_account_scope(FACULTY, target_role=Role.STUDENT, target_department="CSE")
    check_account_scope(ADMIN, target_role=Role.INCHARGE, target_department="ECE")


def test_student_in_scope():
    assert student_in_scope(INCHARGE, student_department="CSE", student_class="B")
    assert not student_in_scope(INCHARGE, student_department="ECE", student_class="A")
    class_incharge = Caller(user_id="i2", role=Role.INCHARGE, department="CSE", class_name="A")
    assert not student_in_scope(class_incharge, student_department="CSE", student_class="B")
    assert student_in_scope(ADMIN, student_department=None, student_class=None)
