from sqlalchemy import Column, Integer, DateTime, String, Text, Boolean, ForeignKey, Index, Uuid
import sqlalchemy
from sqlalchemy.orm import declarative_base

from shortener.utils import utcnow

Base = declarative_base()

class Link(Base):
    __tablename__ = 'links'
    id = Column(Integer, primary_key=True)
    original_url = Column(String(2048), nullable=False, index=True)
    short_code = Column(String(20), nullable=False, unique=True, index=True)
    owner_id = Column(Uuid, nullable=True, index=True)
    title = Column(String(200), nullable=True)
    description = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=sqlalchemy.func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=sqlalchemy.func.now(), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True, index=True)


class Click(Base):
    __tablename__ = 'clicks'
    id = Column(Integer, primary_key=True)
    link_id = Column(Integer, ForeignKey('links.id', ondelete='CASCADE'), nullable=False, index=True)
    occurred_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    source_ip = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    referrer = Column(Text, nullable=True)
    device_class = Column(String(16), default='other', nullable=False)

    __table_args__ = (
        Index('ix_clicks_link_id_occurred_at', 'link_id', 'occurred_at'),
    )
