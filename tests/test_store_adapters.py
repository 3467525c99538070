"""Adapter behaviour against recording stand-ins for the drivers."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta

import mysql.connector
import pytest
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from smart_attendance.attendance.mongo_attendance_repository import MongoAttendanceRepository
from smart_attendance.attendance.mysql_attendance_repository import MySQLAttendanceRepository
from smart_attendance.attendance.repository import AttendanceQuery
from smart_attendance.complaints.mongo_complaint_repository import MongoComplaintRepository
from smart_attendance.core.enums import AttendanceOrigin, AttendanceStatus
from smart_attendance.core.exceptions import ConflictError, StoreMissingError, UnavailableError
from smart_attendance.database.mysql_base import normalize_mysql_time, translate_mysql_error
from smart_attendance.permissions.mysql_leave_repository import MySQLLeaveRequestRepository
from smart_attendance.schedules.model import StaffSlot

MARKED_AT = datetime(2026, 3, 4, 9, 30)


class RecordingCursor:
    def __init__(self, rows=(), error=None):
        self.executed = []
        self._rows = list(rows)
        self._error = error

    def execute(self, sql, params=None):
        if self._error is not None:
            raise self._error
        self.executed.append((" ".join(sql.split()), params))

    def fetchone(self):
        return self._rows.pop(0) if self._rows else None

    def fetchall(self):
        rows, self._rows = self._rows, []
        return rows

    def close(self):
        pass


class RecordingConnection:
    def __init__(self, cursor):
        self.cur = cursor
        self.committed = False
        self.rolled_back = False
        self.closed = False

    def cursor(self, dictionary=False):
        return self.cur

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True


class ConnFactory:
    def __init__(self, cursor=None, connect_error=None):
        self.conn = RecordingConnection(cursor or RecordingCursor())
        self.connects = 0
        self._connect_error = connect_error

    def connect(self, *, with_database=True):
        self.connects += 1
        if self._connect_error is not None:
            raise self._connect_error
        return self.conn


def _mysql_row(period_id=0, status="P"):
    return {
        "id": 7,
        "student_id": 5,
        "att_date": date(2026, 3, 4),
        "period_id": period_id,
        "status": status,
        "origin": "hardware",
        "marked_at": MARKED_AT,
    }


def test_mysql_upsert_is_one_conditional_insert():
    factory = ConnFactory(RecordingCursor(rows=[_mysql_row()]))
    repo = MySQLAttendanceRepository(factory)

    record = repo.upsert_mark(
        student_id="5",
        att_date=date(2026, 3, 4),
        period_id=None,
        status=AttendanceStatus.PRESENT,
        origin=AttendanceOrigin.HARDWARE,
        marked_at=MARKED_AT,
    )

    insert_sql, insert_params = factory.conn.cur.executed[0]
    assert insert_sql.startswith("INSERT INTO attendance")
    assert "ON DUPLICATE KEY UPDATE status=VALUES(status)" in insert_sql
    assert insert_params == (5, date(2026, 3, 4), 0, "P", MARKED_AT, "hardware")
    assert factory.conn.committed and factory.conn.closed

    assert record.record_id == "7"
    assert record.period_id is None
    assert record.origin == AttendanceOrigin.HARDWARE


def test_mysql_staff_slots_match_weekday_period_and_class():
    factory = ConnFactory(RecordingCursor(rows=[_mysql_row(period_id=1)]))
    repo = MySQLAttendanceRepository(factory)

    slots = frozenset({StaffSlot(2, 1, "CSE", "A"), StaffSlot(0, 3)})
    records = repo.list_marks(AttendanceQuery(slots=slots, department="CSE", limit=10))

    sql, params = factory.conn.cur.executed[0]
    assert "JOIN users u ON u.user_id = a.student_id" in sql
    assert (
        "((WEEKDAY(a.att_date)=%s AND a.period_id=%s) OR "
        "(WEEKDAY(a.att_date)=%s AND a.period_id=%s AND u.department=%s AND u.class_name=%s))"
    ) in sql
    assert "LIMIT %s" in sql
    assert params == ("CSE", 0, 3, 2, 1, "CSE", "A", 10)
    assert records[0].period_id == 1


def test_mysql_staff_slots_alone_join_users():
    factory = ConnFactory(RecordingCursor(rows=[{"total": 0, "present": 0}]))
    repo = MySQLAttendanceRepository(factory)

    assert repo.count_marks(AttendanceQuery(slots=frozenset({StaffSlot(2, 1, "ECE", "B")}))) == (0, 0)

    sql, params = factory.conn.cur.executed[0]
    assert "JOIN users u ON u.user_id = a.student_id" in sql
    assert params == (2, 1, "ECE", "B")


def test_mysql_empty_slot_set_never_queries():
    factory = ConnFactory()
    repo = MySQLAttendanceRepository(factory)

    assert repo.list_marks(AttendanceQuery(slots=frozenset())) == []
    assert repo.count_marks(AttendanceQuery(slots=frozenset())) == (0, 0)
    assert repo.count_marks(AttendanceQuery(student_id="not-a-number")) == (0, 0)
    assert factory.connects == 0


def test_mysql_missing_table_is_reported():
    missing = mysql.connector.errors.ProgrammingError(msg="Table 'permissions' doesn't exist", errno=1146)
    factory = ConnFactory(RecordingCursor(error=missing))

    with pytest.raises(StoreMissingError):
        MySQLLeaveRequestRepository(factory).count_pending()
    assert factory.conn.rolled_back


def test_mysql_error_translation():
    dup = mysql.connector.errors.IntegrityError(msg="Duplicate entry 'x' for key 'uq_users_email'", errno=1062)
    assert isinstance(translate_mysql_error(dup), ConflictError)
    assert str(translate_mysql_error(dup)) == "Email already exists"

    down = mysql.connector.errors.InterfaceError(msg="Can't connect", errno=2003)
    assert isinstance(translate_mysql_error(down), UnavailableError)

    other = mysql.connector.errors.ProgrammingError(msg="syntax", errno=1064)
    assert translate_mysql_error(other) is other


def test_mysql_unreachable_server_is_unavailable():
    factory = ConnFactory(connect_error=mysql.connector.errors.InterfaceError(msg="Can't connect", errno=2003))
    with pytest.raises(UnavailableError):
        MySQLAttendanceRepository(factory).count_marks(AttendanceQuery())


def test_normalize_mysql_time():
    assert normalize_mysql_time(timedelta(hours=9, minutes=15)) == time(9, 15)
    assert normalize_mysql_time("13:05:30") == time(13, 5, 30)
    assert normalize_mysql_time(None) is None


class RecordingCollection:
    def __init__(self, docs=(), error=None, ids=()):
        self.calls = []
        self._docs = list(docs)
        self._error = error
        self._ids = list(ids)

    def find_one_and_update(self, flt, update, **kwargs):
        self.calls.append(("find_one_and_update", flt, update, kwargs))
        if self._error is not None:
            raise self._error
        return self._docs[0]

    def find(self, flt):
        self.calls.append(("find", flt))
        return self

    def sort(self, keys):
        return self

    def limit(self, n):
        return self

    def __iter__(self):
        return iter(self._docs)

    def count_documents(self, flt):
        self.calls.append(("count_documents", flt))
        return len(self._docs)

    def distinct(self, key, flt):
        self.calls.append(("distinct", key, flt))
        return list(self._ids)


class MongoStub:
    def __init__(self, collections, present=None):
        self._collections = collections
        self._present = set(collections) if present is None else set(present)

    def collection(self, name):
        return self._collections[name]

    def has_collection(self, name):
        return name in self._present


def _mongo_doc(period_id=0):
    return {
        "_id": "65f000000000000000000001",
        "student_id": "65f0000000000000000000aa",
        "date": "2026-03-04",
        "period_id": period_id,
        "status": "A",
        "origin": "web",
        "marked_at": MARKED_AT,
        "day_of_week": 2,
    }


def test_mongo_upsert_uses_find_one_and_update():
    attendance = RecordingCollection(docs=[_mongo_doc(period_id=2)])
    repo = MongoAttendanceRepository(MongoStub({"attendance": attendance}))

    record = repo.upsert_mark(
        student_id="65f0000000000000000000aa",
        att_date=date(2026, 3, 4),
        period_id=2,
        status=AttendanceStatus.ABSENT,
        origin=AttendanceOrigin.WEB,
        marked_at=MARKED_AT,
    )

    _, flt, update, kwargs = attendance.calls[0]
    assert flt == {"student_id": "65f0000000000000000000aa", "date": "2026-03-04", "period_id": 2}
    assert update["$set"] == {"status": "A", "marked_at": MARKED_AT, "origin": "web"}
    assert update["$setOnInsert"] == {"day_of_week": 2}
    assert kwargs == {"upsert": True, "return_document": ReturnDocument.AFTER}
    assert record.period_id == 2
    assert record.date == date(2026, 3, 4)


def test_mongo_upsert_race_becomes_conflict():
    attendance = RecordingCollection(error=DuplicateKeyError("E11000 duplicate key uq_attendance_key"))
    repo = MongoAttendanceRepository(MongoStub({"attendance": attendance}))

    with pytest.raises(ConflictError, match="concurrently"):
        repo.upsert_mark(
            student_id="s1",
            att_date=date(2026, 3, 4),
            period_id=None,
            status=AttendanceStatus.PRESENT,
            origin=AttendanceOrigin.WEB,
            marked_at=MARKED_AT,
        )


def test_mongo_filters():
    attendance = RecordingCollection(docs=[_mongo_doc()])
    users = RecordingCollection()
    repo = MongoAttendanceRepository(MongoStub({"attendance": attendance, "users": users}))

    records = repo.list_marks(
        AttendanceQuery(slots=frozenset({StaffSlot(2, 1)}), start=date(2026, 3, 1), end=date(2026, 3, 4))
    )
    assert records[0].period_id is None
    assert attendance.calls[0] == (
        "find",
        {
            "$and": [
                {"$or": [{"day_of_week": 2, "period_id": 1}]},
                {"date": {"$gte": "2026-03-01", "$lte": "2026-03-04"}},
            ]
        },
    )

    # a department with no students short-circuits
    assert repo.count_marks(AttendanceQuery(department="MECH")) == (0, 0)
    assert users.calls[0] == ("distinct", "_id", {"role": "student", "department": "MECH"})
    assert len(attendance.calls) == 1


def test_mongo_staff_slots_keep_to_the_class_roll():
    attendance = RecordingCollection(docs=[_mongo_doc(period_id=1)])
    users = RecordingCollection(ids=["65f0000000000000000000aa"])
    repo = MongoAttendanceRepository(MongoStub({"attendance": attendance, "users": users}))

    repo.list_marks(AttendanceQuery(slots=frozenset({StaffSlot(2, 1, "CSE", "A"), StaffSlot(0, 3)})))
    assert users.calls == [("distinct", "_id", {"role": "student", "department": "CSE", "class_name": "A"})]
    assert attendance.calls[0] == (
        "find",
        {
            "$and": [
                {
                    "$or": [
                        {"day_of_week": 0, "period_id": 3},
                        {"day_of_week": 2, "period_id": 1, "student_id": {"$in": ["65f0000000000000000000aa"]}},
                    ]
                }
            ]
        },
    )

    # a class with no students leaves nothing to match
    empty = RecordingCollection()
    repo = MongoAttendanceRepository(MongoStub({"attendance": attendance, "users": empty}))
    assert repo.list_marks(AttendanceQuery(slots=frozenset({StaffSlot(2, 1, "ECE", "B")}))) == []
    assert len(attendance.calls) == 1


def test_mongo_unreachable_is_unavailable():
    attendance = RecordingCollection(error=ServerSelectionTimeoutError("no servers"))
    repo = MongoAttendanceRepository(MongoStub({"attendance": attendance}))
    with pytest.raises(UnavailableError):
        repo.upsert_mark(
            student_id="s1",
            att_date=date(2026, 3, 4),
            period_id=1,
            status=AttendanceStatus.PRESENT,
            origin=AttendanceOrigin.WEB,
            marked_at=MARKED_AT,
        )


def test_mongo_missing_collection_is_reported():
    complaints = RecordingCollection()
    repo = MongoComplaintRepository(MongoStub({"complaints": complaints}, present=()))
    with pytest.raises(StoreMissingError):
        repo.count_pending()
