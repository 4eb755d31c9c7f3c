from __future__ import annotations
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer
from .db import Base


class UsageCounter(Base):
	__tablename__ = "usage_counters"
	# Key embeds the counter scope and window, e.g. "generate:<client>:<minute>"
	key = Column(String(256), primary_key=True, index=True)
	count = Column(Integer, default=0, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False, index=True)
