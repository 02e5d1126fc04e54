"""User notification record: one row per installed app instance.

Written by the app's settings screen (toggle, preferred time, token rotation). The daily
motivation dispatcher only reads it, sets last_sent_at after a successful send and clears
push_token when the push provider reports the token dead.
"""
from sqlalchemy import Boolean, Column, DateTime, String, Text
from sqlalchemy.sql import func

from aura_notify.db.base import Base


class NotificationUser(Base):
    __tablename__ = "users"

    id = Column(String(128), primary_key=True)  # device/installation id
    notifications_enabled = Column(Boolean, nullable=False, default=False, server_default="false", index=True)
    timezone = Column(String(64), nullable=True)  # IANA name; NULL/unknown = UTC
    preferred_time = Column(String(5), nullable=True)  # "HH:MM" local; NULL = 09:00
    last_sent_at = Column(DateTime(timezone=True), nullable=True)
    push_token = Column(Text, nullable=True)
    is_premium = Column(Boolean, nullable=False, default=False, server_default="false")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
