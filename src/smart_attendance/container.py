from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from .attendance.mongo_attendance_repository import MongoAttendanceRepository
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.scan_log import CsvScanLog
from .attendance.service import AttendanceService
from .common.datetime_utils import now_local
from .complaints.mongo_complaint_repository import MongoComplaintRepository
from .complaints.mysql_complaint_repository import MySQLComplaintRepository
from .complaints.repository import ComplaintRepository
from .complaints.service import ComplaintService
from .core.constants import DEFAULT_TEMP_PASSWORD, DEFAULT_TOKEN_TTL_HOURS
from .database.connection import DBConfig, DatabaseConnection
from .database.health import StoreHealth
from .database.mongo import MongoConfig, MongoConnection
from .hardware.service import CsvAttendanceImporter
from .notifications.mailer import LoggingMailer
from .permissions.mongo_leave_repository import MongoLeaveRequestRepository
from .permissions.mysql_leave_repository import MySQLLeaveRequestRepository
from .permissions.repository import LeaveRequestRepository
from .permissions.service import LeaveService
from .reports.service import ReportService
from .schedules.mongo_schedule_repository import MongoScheduleRepository
from .schedules.mysql_schedule_repository import MySQLScheduleRepository
from .schedules.repository import ScheduleRepository
from .schedules.service import ScheduleService
from .users.mongo_user_repository import MongoActivationCodeRepository, MongoUserRepository
from .users.mysql_user_repository import MySQLActivationCodeRepository, MySQLUserRepository
from .users.repository import ActivationCodeRepository, UserRepository
from .users.service import AuthService, UserService
from .users.tokens import TokenSigner

MYSQL = "mysql"
MONGO = "mongo"


@dataclass(frozen=True)
class Container:
    backend: str
    store: Any
    health: StoreHealth
    token_signer: TokenSigner
    mailer: LoggingMailer

    users_repo: UserRepository
    codes_repo: ActivationCodeRepository
    schedules_repo: ScheduleRepository
    attendance_repo: AttendanceRepository
    leaves_repo: LeaveRequestRepository
    complaints_repo: ComplaintRepository

    auth_service: AuthService
    user_service: UserService
    schedule_service: ScheduleService
    attendance_service: AttendanceService
    report_service: ReportService
    leave_service: LeaveService
    complaint_service: ComplaintService
    csv_importer: CsvAttendanceImporter


def wire_container(
    settings: Any,
    *,
    backend: str,
    store: Any,
    health: StoreHealth,
    users_repo: UserRepository,
    codes_repo: ActivationCodeRepository,
    schedules_repo: ScheduleRepository,
    attendance_repo: AttendanceRepository,
    leaves_repo: LeaveRequestRepository,
    complaints_repo: ComplaintRepository,
    clock: Callable = now_local,
    mailer: Optional[LoggingMailer] = None,
) -> Container:
    """Build the services on top of already-constructed repositories."""

    signer = TokenSigner(
        getattr(settings, "SECRET_KEY"),
        ttl_hours=int(getattr(settings, "TOKEN_TTL_HOURS", DEFAULT_TOKEN_TTL_HOURS)),
    )
    mailer = mailer or LoggingMailer()
    scan_log_path = getattr(settings, "SCAN_LOG_PATH", "")

    auth_service = AuthService(
        users_repo,
        codes_repo,
        signer,
        email_domain=getattr(settings, "EMAIL_DOMAIN", ""),
        incharge_emails=getattr(settings, "INCHARGE_EMAILS", ()),
        student_email_pattern=getattr(settings, "STUDENT_EMAIL_PATTERN", r"^(24pa|25pa)[a-z0-9]+$"),
        invite_code=getattr(settings, "ADMIN_INVITE_CODE", None),
    )
    user_service = UserService(
        users_repo,
        mailer=mailer,
        default_password=getattr(settings, "DEFAULT_STUDENT_PASSWORD", DEFAULT_TEMP_PASSWORD),
    )
    schedule_service = ScheduleService(schedules_repo, users_repo)
    attendance_service = AttendanceService(
        attendance_repo,
        users_repo,
        schedule_service,
        scan_log=CsvScanLog(scan_log_path) if scan_log_path else None,
        clock=clock,
    )
    report_service = ReportService(
        attendance_repo,
        schedule_service,
        users_repo,
        leaves_repo,
        complaints_repo,
        clock=clock,
    )
    leave_service = LeaveService(leaves_repo, users_repo, clock=clock)
    complaint_service = ComplaintService(complaints_repo, users_repo, clock=clock)
    csv_importer = CsvAttendanceImporter(attendance_service, users_repo)

    return Container(
        backend=backend,
        store=store,
        health=health,
        token_signer=signer,
        mailer=mailer,
        users_repo=users_repo,
        codes_repo=codes_repo,
        schedules_repo=schedules_repo,
        attendance_repo=attendance_repo,
        leaves_repo=leaves_repo,
        complaints_repo=complaints_repo,
        auth_service=auth_service,
        user_service=user_service,
        schedule_service=schedule_service,
        attendance_service=attendance_service,
        report_service=report_service,
        leave_service=leave_service,
        complaint_service=complaint_service,
        csv_importer=csv_importer,
    )


def _build_mysql(settings: Any, health_retry: float) -> dict:
    config = DBConfig.from_dict(
        getattr(settings, "DB_CONFIG"),
        connect_timeout=int(getattr(settings, "DB_CONNECT_TIMEOUT", 5)),
    )
    conn = DatabaseConnection.get_instance(config)
    return dict(
        store=conn,
        health=StoreHealth(conn.ping, backend=MYSQL, retry_seconds=health_retry),
        users_repo=MySQLUserRepository(conn),
        codes_repo=MySQLActivationCodeRepository(conn),
        schedules_repo=MySQLScheduleRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        leaves_repo=MySQLLeaveRequestRepository(conn),
        complaints_repo=MySQLComplaintRepository(conn),
    )


def _build_mongo(settings: Any, health_retry: float) -> dict:
    conn = MongoConnection(
        MongoConfig(
            uri=getattr(settings, "MONGO_URI"),
            database=getattr(settings, "MONGO_DB"),
            connect_timeout=int(getattr(settings, "DB_CONNECT_TIMEOUT", 5)),
        )
    )
    return dict(
        store=conn,
        health=StoreHealth(conn.ping, backend=MONGO, retry_seconds=health_retry),
        users_repo=MongoUserRepository(conn),
        codes_repo=MongoActivationCodeRepository(conn),
        schedules_repo=MongoScheduleRepository(conn),
        attendance_repo=MongoAttendanceRepository(conn),
        leaves_repo=MongoLeaveRequestRepository(conn),
        complaints_repo=MongoComplaintRepository(conn),
    )


def build_container(settings: Any) -> Container:
    backend = str(getattr(settings, "STORE_BACKEND", MYSQL)).lower()
    health_retry = float(getattr(settings, "HEALTH_RETRY_SECONDS", 5))

    if backend == MYSQL:
        parts = _build_mysql(settings, health_retry)
    elif backend == MONGO:
        parts = _build_mongo(settings, health_retry)
    else:
        raise ValueError(f"Unknown STORE_BACKEND: {backend!r} (expected 'mysql' or 'mongo')")

    return wire_container(settings, backend=backend, **parts)
