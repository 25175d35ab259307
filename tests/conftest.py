from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional

import pytest

from attendance_tracker.attendance.model import Attendance
from attendance_tracker.attendance.repository import USER_DATE_KEY
from attendance_tracker.container import wire
from attendance_tracker.core.enums import AuthProvider, LeaveStatus, Role
from attendance_tracker.database.errors import DuplicateKeyError, OverlapConflictError
from attendance_tracker.leaves.model import Leave
from attendance_tracker.main import create_app
from attendance_tracker.users.model import User
from attendance_tracker.users.repository import EMAIL_KEY, USERNAME_KEY


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class InMemoryUsers:
    """Emulates the users table, including its two unique keys."""

    def __init__(self, clock: Clock):
        self._clock = clock
        self._next_id = 1
        self.rows: dict[int, User] = {}
        self.create_calls = 0

    def get_by_id(self, user_id):
        return self.rows.get(int(user_id))

    def get_by_username(self, username):
        return next((u for u in self.rows.values() if u.username == username), None)

    def get_by_email(self, email):
        return next((u for u in self.rows.values() if u.email == email), None)

    def exists_by_username(self, username):
        return self.get_by_username(username) is not None

    def exists_by_email(self, email, *, exclude_user_id=None):
        return self._email_taken(email, exclude_user_id)

    def _email_taken(self, email, exclude_user_id=None):
        return any(u.email == email and u.user_id != exclude_user_id for u in self.rows.values())

    def create_user(
        self,
        *,
        username,
        email,
        password_hash,
        first_name,
        last_name,
        role,
        auth_provider,
        provider_id=None,
        enabled=True,
    ):
        self.create_calls += 1
        if any(u.username == username for u in self.rows.values()):
            raise DuplicateKeyError(USERNAME_KEY)
        if self._email_taken(email):
            raise DuplicateKeyError(EMAIL_KEY)
        user_id = self._next_id
        self._next_id += 1
        self.rows[user_id] = User(
            user_id=user_id,
            username=username,
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            role=role,
            enabled=enabled,
            auth_provider=auth_provider,
            provider_id=provider_id,
            created_at=self._clock(),
        )
        return user_id

    def _update(self, user_id, **changes):
        user = self.rows.get(int(user_id))
        if not user:
            return False
        self.rows[user.user_id] = replace(user, **changes)
        return True

    def update_profile(self, user_id, *, first_name, last_name, email):
        if self._email_taken(email, int(user_id)):
            raise DuplicateKeyError(EMAIL_KEY)
        return self._update(user_id, first_name=first_name, last_name=last_name, email=email)

    def update_external_identity(self, user_id, *, first_name, last_name, provider_id):
        return self._update(user_id, first_name=first_name, last_name=last_name, provider_id=provider_id)

    def update_password(self, user_id, *, password_hash):
        return self._update(user_id, password_hash=password_hash)

    def link_local_credentials(self, user_id, *, password_hash):
        user = self.rows.get(int(user_id))
        if not user or user.auth_provider == AuthProvider.LOCAL:
            return False
        return self._update(user_id, password_hash=password_hash, auth_provider=AuthProvider.LOCAL)

    def set_enabled(self, user_id, *, enabled):
        return self._update(user_id, enabled=bool(enabled))

    def update_role(self, user_id, *, role):
        return self._update(user_id, role=role)

    def delete_by_id(self, user_id):
        return self.rows.pop(int(user_id), None) is not None

    def list_all(self):
        return [self.rows[k] for k in sorted(self.rows)]


class InMemoryAttendance:
    """Emulates the attendance table and its (user_id, work_date) unique key."""

    def __init__(self, users: InMemoryUsers, clock: Clock):
        self._users = users
        self._clock = clock
        self._next_id = 1
        self.rows: dict[int, Attendance] = {}

    def _joined(self, record: Attendance) -> Attendance:
        user = self._users.get_by_id(record.user_id)
        if not user:
            return record
        return replace(record, username=user.username, full_name=user.full_name)

    def _for_user(self, user_id, start=None, end=None):
        rows = [
            r
            for r in self.rows.values()
            if r.user_id == int(user_id)
            and (start is None or r.work_date >= start)
            and (end is None or r.work_date <= end)
        ]
        return sorted((self._joined(r) for r in rows), key=lambda r: r.work_date, reverse=True)

    def get_by_id(self, attendance_id):
        record = self.rows.get(int(attendance_id))
        return self._joined(record) if record else None

    def get_for_user_and_date(self, user_id, work_date):
        for r in self.rows.values():
            if r.user_id == int(user_id) and r.work_date == work_date:
                return self._joined(r)
        return None

    def create(self, *, user_id, work_date, present, check_in_time, notes=None):
        if any(r.user_id == int(user_id) and r.work_date == work_date for r in self.rows.values()):
            raise DuplicateKeyError(USER_DATE_KEY)
        attendance_id = self._next_id
        self._next_id += 1
        self.rows[attendance_id] = Attendance(
            attendance_id=attendance_id,
            user_id=int(user_id),
            work_date=work_date,
            present=bool(present),
            check_in_time=check_in_time,
            notes=notes,
            created_at=self._clock(),
        )
        return attendance_id

    def set_check_out(self, attendance_id, *, check_out_time):
        record = self.rows.get(int(attendance_id))
        if not record or record.check_out_time is not None:
            return False
        self.rows[record.attendance_id] = replace(record, check_out_time=check_out_time)
        return True

    def list_for_user(self, user_id):
        return self._for_user(user_id)

    def list_for_user_between(self, user_id, start, end):
        return self._for_user(user_id, start, end)

    def page_for_user(self, user_id, *, offset, limit, start=None, end=None):
        return self._for_user(user_id, start, end)[offset:offset + limit]

    def count_for_user(self, user_id, *, start=None, end=None):
        return len(self._for_user(user_id, start, end))

    def page_all(self, *, offset, limit):
        rows = sorted(
            (self._joined(r) for r in self.rows.values()),
            key=lambda r: (r.work_date, r.check_in_time or datetime.min),
            reverse=True,
        )
        return rows[offset:offset + limit]

    def count_all(self):
        return len(self.rows)

    def delete_by_id(self, attendance_id):
        return self.rows.pop(int(attendance_id), None) is not None

    def fill_missing_created_at(self):
        fixed = 0
        for key, r in list(self.rows.items()):
            if r.created_at is None:
                stamp = r.check_in_time or datetime.combine(r.work_date, datetime.min.time())
                self.rows[key] = replace(r, created_at=stamp)
                fixed += 1
        return fixed


class InMemoryLeaves:
    """Emulates the leaves table; create_pending re-checks overlap like the locked insert."""

    def __init__(self, users: InMemoryUsers, clock: Clock):
        self._users = users
        self._clock = clock
        self._next_id = 1
        self.rows: dict[int, Leave] = {}

    def _joined(self, leave: Leave) -> Leave:
        user = self._users.get_by_id(leave.user_id)
        approver = self._users.get_by_id(leave.approved_by) if leave.approved_by else None
        return replace(
            leave,
            username=user.username if user else None,
            user_full_name=user.full_name if user else None,
            approved_by_name=approver.full_name if approver else None,
        )

    def _newest_first(self, rows):
        return sorted((self._joined(r) for r in rows), key=lambda l: (l.created_at, l.leave_id), reverse=True)

    def get_by_id(self, leave_id):
        leave = self.rows.get(int(leave_id))
        return self._joined(leave) if leave else None

    def has_active_overlap(self, user_id, start, end):
        return self._overlap_under_lock(user_id, start, end)

    def _overlap_under_lock(self, user_id, start, end):
        return any(
            l.user_id == int(user_id) and l.status.blocks_overlap and l.overlaps(start, end)
            for l in self.rows.values()
        )

    def create_pending(self, *, user_id, leave_type, start_date, end_date, days, reason=None):
        if self._overlap_under_lock(user_id, start_date, end_date):
            raise OverlapConflictError(f"Overlapping leave for user {user_id}")
        leave_id = self._next_id
        self._next_id += 1
        stamp = self._clock() + timedelta(seconds=leave_id)
        self.rows[leave_id] = Leave(
            leave_id=leave_id,
            user_id=int(user_id),
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            days=int(days),
            reason=reason,
            created_at=stamp,
            updated_at=stamp,
        )
        return leave_id

    def transition_from_pending(self, leave_id, *, status, approver_id=None, comment=None):
        leave = self.rows.get(int(leave_id))
        if not leave or leave.status != LeaveStatus.PENDING:
            return False
        self.rows[leave.leave_id] = replace(
            leave, status=status, approved_by=approver_id, approval_comment=comment, updated_at=self._clock()
        )
        return True

    def list_for_user(self, user_id):
        return self._newest_first(l for l in self.rows.values() if l.user_id == int(user_id))

    def page_for_user(self, user_id, *, offset, limit):
        return self.list_for_user(user_id)[offset:offset + limit]

    def count_for_user(self, user_id):
        return len(self.list_for_user(user_id))

    def _with_status(self, status):
        return [l for l in self.rows.values() if status is None or l.status == status]

    def page_all(self, *, offset, limit, status=None):
        return self._newest_first(self._with_status(status))[offset:offset + limit]

    def count_all(self, *, status=None):
        return len(self._with_status(status))


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 3, 15, 9, 30, 0)


@pytest.fixture
def clock(fixed_now) -> Clock:
    return Clock(fixed_now)


@pytest.fixture
def users_repo(clock) -> InMemoryUsers:
    return InMemoryUsers(clock)


@pytest.fixture
def attendance_repo(users_repo, clock) -> InMemoryAttendance:
    return InMemoryAttendance(users_repo, clock)


@pytest.fixture
def leaves_repo(users_repo, clock) -> InMemoryLeaves:
    return InMemoryLeaves(users_repo, clock)


@pytest.fixture
def container(users_repo, attendance_repo, leaves_repo, clock):
    return wire(users_repo, attendance_repo, leaves_repo, clock=clock)


@pytest.fixture
def directory(container):
    return container.user_directory


@pytest.fixture
def ledger(container):
    return container.attendance_ledger


@pytest.fixture
def workflow(container):
    return container.leave_workflow


@pytest.fixture
def make_user(directory):
    """Register a LOCAL user; password defaults to 'secret123'."""

    def _make(username: str, *, role: Role = Role.USER, email: Optional[str] = None, password: str = "secret123"):
        return directory.register_local_user(
            username=username,
            email=email or f"{username}@example.com",
            raw_password=password,
            first_name=username.capitalize(),
            last_name="Tester",
            role=role,
        )

    return _make


@pytest.fixture
def app(container):
    app = create_app(container, settings_module="attendance_tracker.config.testing")
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client):
    def _login(username: str, password: str = "secret123"):
        resp = client.post("/api/auth/login", json={"username": username, "password": password})
        assert resp.status_code == 200, resp.get_json()
        return resp

    return _login
