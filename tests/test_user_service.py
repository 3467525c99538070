from __future__ import annotations

import pytest
from werkzeug.security import check_password_hash

from fakes import FakeActivationCodeRepo, caller_for
from smart_attendance.core.enums import Role
from smart_attendance.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from smart_attendance.database.bootstrap import ensure_admin, seed_activation_codes
from smart_attendance.notifications.mailer import LoggingMailer
from smart_attendance.users.service import UserService


@pytest.fixture
def mailer():
    return LoggingMailer()


@pytest.fixture
def service(users, mailer):
    return UserService(users, mailer=mailer, default_password="Welcome#4")


def test_incharge_creates_students_in_own_department(service, people, mailer):
    created = service.create_account(
        caller_for(people.incharge),
        name="Dave",
        email="24pa1a0503@vishnu.edu.in",
        role="student",
        department="ECE",
        class_name="A",
    )

    assert created.department == "CSE"
    assert created.must_change_password
    assert check_password_hash(created.password_hash, "Welcome#4")
    assert mailer.sent[-1]["to"] == "24pa1a0503@vishnu.edu.in"
    assert "Welcome#4" in mailer.sent[-1]["body"]


def test_incharge_cannot_create_staff(service, people):
    with pytest.raises(AuthorizationError):
        service.create_account(caller_for(people.incharge), name="Eve", email="eve@vishnu.edu.in", role="faculty")
    with pytest.raises(AuthorizationError):
        service.create_account(caller_for(people.faculty), name="Eve", email="eve@vishnu.edu.in", role="student")


def test_create_rejects_duplicates(service, people):
    admin = caller_for(people.admin)
    with pytest.raises(ConflictError):
        service.create_account(admin, name="Alice 2", email="24pa1a0501@vishnu.edu.in", role="student")
    with pytest.raises(ConflictError):
        service.create_account(admin, name="Dave", email="dave@vishnu.edu.in", role="student", uid="TAG-ALICE")
    with pytest.raises(ValidationError):
        service.create_account(admin, name="Dave", email="dave@vishnu.edu.in", role="dean")


def test_incharge_lists_only_own_students(service, people):
    listed = service.list_users(caller_for(people.incharge), role="faculty", department="ECE")
    assert {u.name for u in listed} == {"Alice", "Bob"}
    assert len(service.list_users(caller_for(people.admin))) == 7
    assert [u.name for u in service.list_users(caller_for(people.admin), search="carol")] == ["Carol"]


def test_update_user_rules(service, people):
    incharge = caller_for(people.incharge)
    updated = service.update_user(incharge, people.alice.user_id, {"name": "Alice B", "class_name": "B"})
    assert (updated.name, updated.class_name) == ("Alice B", "B")

    with pytest.raises(AuthorizationError):
        service.update_user(incharge, people.alice.user_id, {"department": "ECE"})
    with pytest.raises(AuthorizationError):
        service.update_user(incharge, people.alice.user_id, {"role": "faculty"})
    with pytest.raises(AuthorizationError):
        service.update_user(incharge, people.carol.user_id, {"name": "Carol B"})

    promoted = service.update_user(caller_for(people.admin), people.alice.user_id, {"role": "faculty"})
    assert promoted.role == Role.FACULTY


def test_toggle_promote_demote(service, people):
    admin = caller_for(people.admin)
    assert service.toggle_status(admin, people.bob.user_id).is_active is False
    assert service.toggle_status(admin, people.bob.user_id).is_active is True

    assert service.promote(admin, people.faculty.user_id).role == Role.INCHARGE
    assert service.demote(admin, people.faculty.user_id).role == Role.FACULTY
    with pytest.raises(NotFoundError):
        service.demote(admin, people.faculty.user_id)
    with pytest.raises(AuthorizationError):
        service.promote(caller_for(people.incharge), people.faculty.user_id)


def test_delete_user(service, people):
    admin = caller_for(people.admin)
    with pytest.raises(ValidationError):
        service.delete_user(admin, people.admin.user_id)
    service.delete_user(admin, people.bob.user_id)
    with pytest.raises(NotFoundError):
        service.delete_user(admin, people.bob.user_id)


def test_change_password(service, people, users, mailer):
    alice = caller_for(people.alice)
    service.change_password(alice, people.alice.user_id, "n3w-secret")
    assert check_password_hash(users.get_by_id(people.alice.user_id).password_hash, "n3w-secret")
    assert mailer.sent == []

    with pytest.raises(AuthorizationError):
        service.change_password(alice, people.bob.user_id, "n3w-secret")
    with pytest.raises(ValidationError):
        service.change_password(alice, people.alice.user_id, "123")

    service.change_password(caller_for(people.admin), people.bob.user_id, "reset-123")
    assert mailer.sent[-1]["subject"] == "Password reset"


def test_map_uid(service, people):
    incharge = caller_for(people.incharge)
    assert service.map_uid(incharge, people.bob.user_id, " TAG-NEW ").uid == "TAG-NEW"
    with pytest.raises(ConflictError):
        service.map_uid(incharge, people.bob.user_id, "TAG-ALICE")
    with pytest.raises(ValidationError):
        service.map_uid(incharge, people.bob.user_id, "")
    with pytest.raises(AuthorizationError):
        service.map_uid(caller_for(people.faculty), people.bob.user_id, "TAG-X")


def test_ensure_admin_creates_then_resets(users):
    first = ensure_admin(users, email="Admin@vishnu.edu.in", password="first-pass")
    again = ensure_admin(users, email="admin@vishnu.edu.in", password="second-pass")

    assert first == again
    admin = users.get_by_id(first)
    assert admin.role == Role.ADMIN
    assert check_password_hash(admin.password_hash, "second-pass")


def test_seed_activation_codes_skips_existing():
    codes = FakeActivationCodeRepo(["FAC-1"])
    assert seed_activation_codes(codes, ["FAC-1", " FAC-2 ", ""]) == 1
    assert set(codes.codes) == {"FAC-1", "FAC-2"}
