from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects import mysql, postgresql, sqlite

from ..extensions import db
from ..models.daily_scan import DailyScan
from ..utils.dates import utcnow


def get_scan(user_id: str, scan_date: str) -> Optional[DailyScan]:
    return DailyScan.query.filter_by(user_id=user_id, scan_date=scan_date).first()


def get_scan_count(user_id: str, scan_date: str) -> int:
    count = db.session.execute(
        select(DailyScan.scan_count).where(
            DailyScan.user_id == user_id,
            DailyScan.scan_date == scan_date,
        )
    ).scalar_one_or_none()
    return count or 0


def _upsert_increment(user_id: str, scan_date: str, now):
    dialect = db.session.get_bind().dialect.name
    values = dict(user_id=user_id, scan_date=scan_date, scan_count=1, created_at=now, updated_at=now)

    if dialect == "sqlite":
        stmt = sqlite.insert(DailyScan).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=["user_id", "scan_date"],
            set_={"scan_count": DailyScan.scan_count + 1, "updated_at": now},
        )
    if dialect == "postgresql":
        stmt = postgresql.insert(DailyScan).values(**values)
        return stmt.on_conflict_do_update(
            constraint="uq_daily_scans_user_date",
            set_={"scan_count": DailyScan.scan_count + 1, "updated_at": now},
        )
    if dialect in ("mysql", "mariadb"):
        stmt = mysql.insert(DailyScan).values(**values)
        return stmt.on_duplicate_key_update(scan_count=DailyScan.scan_count + 1, updated_at=now)

    raise RuntimeError(f"Atomic scan increment is not supported on the {dialect} dialect")


def increment_scan(user_id: str, scan_date: str) -> dict:
    """Add one to the (user, day) counter, creating it at 1 if absent.

    The increment happens inside the database (INSERT .. ON CONFLICT UPDATE),
    so concurrent callers never lose an update. The row is re-read in the
    same transaction, which still holds the row's write lock.
    """
    db.session.execute(_upsert_increment(user_id, scan_date, utcnow()))
    scan = db.session.execute(
        select(DailyScan)
        .where(DailyScan.user_id == user_id, DailyScan.scan_date == scan_date)
        .execution_options(populate_existing=True)
    ).scalar_one()
    result = scan.to_dict()
    db.session.commit()
    return result
