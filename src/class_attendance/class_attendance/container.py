from __future__ import annotations

from dataclasses import dataclass

from .analytics.service import RangeAnalyticsService
from .approvals.mysql_approval_repository import MySQLApprovalRepository
from .approvals.service import ODApprovalWorkflow
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .core.constants import DEFAULT_ANALYTICS_WORKERS, DEFAULT_LEGACY_TIMEZONE
from .core.enums import RequestPriority
from .database.connection import DBConfig, DatabaseConnection
from .gateway import AttendanceGateway
from .holidays.mysql_holiday_repository import MySQLHolidayRepository
from .holidays.service import HolidayService
from .legacy.mysql_legacy_repository import MySQLLegacyRosterRepository
from .legacy.service import LegacyRosterStore
from .reconciliation.service import ReconciliationResolver
from .reconciliation.sources import CurrentRecordSource, LegacyDayRangeSource, LegacyExactSource
from .roster.mysql_roster_repository import MySQLRosterRepository


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    attendance_repo: MySQLAttendanceRepository
    legacy_repo: MySQLLegacyRosterRepository
    holidays_repo: MySQLHolidayRepository
    approvals_repo: MySQLApprovalRepository
    roster_repo: MySQLRosterRepository

    legacy_store: LegacyRosterStore
    od_workflow: ODApprovalWorkflow
    holiday_service: HolidayService
    attendance_service: AttendanceService
    resolver: ReconciliationResolver
    analytics_service: RangeAnalyticsService
    gateway: AttendanceGateway


def build_container(
    *,
    db_config: dict,
    legacy_timezone: str = DEFAULT_LEGACY_TIMEZONE,
    analytics_max_workers: int = DEFAULT_ANALYTICS_WORKERS,
    od_request_priority: str = RequestPriority.MEDIUM.value,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    attendance_repo = MySQLAttendanceRepository(conn)
    legacy_repo = MySQLLegacyRosterRepository(conn)
    holidays_repo = MySQLHolidayRepository(conn)
    approvals_repo = MySQLApprovalRepository(conn)
    roster_repo = MySQLRosterRepository(conn)

    legacy_store = LegacyRosterStore(legacy_repo, tz_name=legacy_timezone)
    od_workflow = ODApprovalWorkflow(approvals_repo, attendance_repo, priority=RequestPriority(od_request_priority))
    holiday_service = HolidayService(holidays_repo, attendance_repo, legacy_store)
    attendance_service = AttendanceService(attendance_repo, roster_repo, holiday_service, od_workflow)

    current_source = CurrentRecordSource(attendance_repo)
    resolver = ReconciliationResolver(
        [current_source, LegacyExactSource(legacy_store), LegacyDayRangeSource(legacy_store)],
        roster_repo,
        remarks_source=current_source,
    )
    analytics_service = RangeAnalyticsService(
        resolver,
        holiday_service,
        roster_repo,
        max_workers=analytics_max_workers,
    )
    gateway = AttendanceGateway(
        attendance=attendance_service,
        holidays=holiday_service,
        workflow=od_workflow,
        resolver=resolver,
        analytics=analytics_service,
    )

    return Container(
        conn=conn,
        attendance_repo=attendance_repo,
        legacy_repo=legacy_repo,
        holidays_repo=holidays_repo,
        approvals_repo=approvals_repo,
        roster_repo=roster_repo,
        legacy_store=legacy_store,
        od_workflow=od_workflow,
        holiday_service=holiday_service,
        attendance_service=attendance_service,
        resolver=resolver,
        analytics_service=analytics_service,
        gateway=gateway,
    )
