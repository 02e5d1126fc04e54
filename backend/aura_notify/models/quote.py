"""Static motivational quote pool. last_sent_date drives round-robin (oldest first, never-sent before all)."""
from sqlalchemy import Column, DateTime, Integer, String, Text

from aura_notify.db.base import Base


class MotivationalQuote(Base):
    __tablename__ = "motivational_quotes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    text = Column(Text, nullable=False)
    author = Column(String(256), nullable=True)
    last_sent_date = Column(DateTime(timezone=True), nullable=True, index=True)
