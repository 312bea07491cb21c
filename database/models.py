from sqlalchemy import Column, String, DateTime, JSON, Integer, Boolean, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base
import uuid
from datetime import datetime

Base = declarative_base()


class FormFieldMapping(Base):
    """One configured row translating a form field into a GHL payload element"""
    __tablename__ = "form_field_mappings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    form_id = Column(String(100), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    source_field = Column(String(255), nullable=False)
    target_field = Column(String(255), nullable=False)  # standard key, special kind, __custom__ or __api_custom__<key>
    custom_key = Column(String(255), default="")
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('form_id', 'position', name='uq_form_field_mapping_position'),
    )


class ActivityLog(Base):
    """Admin-facing log of submissions and conversation dispatches"""
    __tablename__ = "activity_log"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_type = Column(String(100), nullable=False)
    form_id = Column(String(100), index=True)
    contact_id = Column(String(100))
    success = Column(Boolean, default=True)
    message = Column(Text)
    event_data = Column(JSON, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)
