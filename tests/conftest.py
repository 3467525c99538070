from __future__ import annotations

from datetime import datetime
from types import SimpleNamespace

import pytest

from fakes import (
    FakeActivationCodeRepo,
    FakeAttendanceRepo,
    FakeComplaintRepo,
    FakeLeaveRepo,
    FakeScheduleRepo,
    FakeUserRepo,
    add_user,
)
from smart_attendance.container import wire_container
from smart_attendance.core.enums import Role
from smart_attendance.database.health import StoreHealth

# Wednesday
FIXED_NOW = datetime(2026, 3, 4, 9, 30)


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def settings():
    return SimpleNamespace(
        SECRET_KEY="test-secret",
        TOKEN_TTL_HOURS=1,
        EMAIL_DOMAIN="vishnu.edu.in",
        INCHARGE_EMAILS=["hod.cse@vishnu.edu.in"],
        STUDENT_EMAIL_PATTERN=r"^(24pa|25pa)[a-z0-9]+$",
        ADMIN_INVITE_CODE="let-me-in",
        DEFAULT_STUDENT_PASSWORD="Welcome#4",
        SCAN_LOG_PATH="",
        LOG_LEVEL="WARNING",
        DEBUG=False,
        TESTING=True,
        CORS_ORIGINS=["*"],
    )


@pytest.fixture
def users():
    return FakeUserRepo()


@pytest.fixture
def people(users):
    """A small college: one CSE incharge, two faculty, three students."""

    return SimpleNamespace(
        admin=add_user(users, name="Admin", email="admin@vishnu.edu.in", role=Role.ADMIN),
        incharge=add_user(
            users, name="Hod Cse", email="hod.cse@vishnu.edu.in", role=Role.INCHARGE, department="CSE"
        ),
        faculty=add_user(users, name="Ravi Kumar", email="ravi.kumar@vishnu.edu.in", role=Role.FACULTY),
        other_faculty=add_user(users, name="Sita Devi", email="sita.devi@vishnu.edu.in", role=Role.FACULTY),
        alice=add_user(
            users,
            name="Alice",
            email="24pa1a0501@vishnu.edu.in",
            role=Role.STUDENT,
            department="CSE",
            class_name="A",
            uid="TAG-ALICE",
            id_number="24PA1A0501",
        ),
        bob=add_user(
            users,
            name="Bob",
            email="24pa1a0502@vishnu.edu.in",
            role=Role.STUDENT,
            department="CSE",
            class_name="A",
            uid="TAG-BOB",
        ),
        carol=add_user(
            users,
            name="Carol",
            email="24pa1a0401@vishnu.edu.in",
            role=Role.STUDENT,
            department="ECE",
            class_name="B",
            uid="TAG-CAROL",
        ),
    )


@pytest.fixture
def repos(users):
    return SimpleNamespace(
        users=users,
        codes=FakeActivationCodeRepo(["FAC-2026"]),
        schedules=FakeScheduleRepo(),
        attendance=FakeAttendanceRepo(users),
        leaves=FakeLeaveRepo(users),
        complaints=FakeComplaintRepo(users),
    )


@pytest.fixture
def health():
    h = StoreHealth(lambda: None, backend="fake")
    h.check()
    return h


@pytest.fixture
def container(settings, repos, health, fixed_now):
    return wire_container(
        settings,
        backend="fake",
        store=None,
        health=health,
        users_repo=repos.users,
        codes_repo=repos.codes,
        schedules_repo=repos.schedules,
        attendance_repo=repos.attendance,
        leaves_repo=repos.leaves,
        complaints_repo=repos.complaints,
        clock=lambda: fixed_now,
    )
