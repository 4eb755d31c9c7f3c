from __future__ import annotations
from datetime import datetime, timedelta
from sqlalchemy import delete
from sqlalchemy.orm import Session

from .models import UsageCounter


def purge_stale_counters(db: Session, *, older_than: timedelta = timedelta(days=7)) -> int:
	threshold = datetime.utcnow() - older_than
	# Counter keys carry their own window, so anything untouched this long is dead
	res = db.execute(delete(UsageCounter).where(UsageCounter.updated_at < threshold))
	db.commit()
	return res.rowcount or 0
