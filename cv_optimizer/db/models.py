# File: cv_optimizer/db/models.py
import uuid

from sqlalchemy import Column, DateTime, Integer, LargeBinary, String, Text
from sqlalchemy.sql import func

from cv_optimizer.db.database import Base


def _new_session_id() -> str:
    return uuid.uuid4().hex


class OptimizationSession(Base):
    __tablename__ = "optimization_sessions"

    id = Column(String(32), primary_key=True, index=True, default=_new_session_id)
    job_description = Column(Text, default="")
    extracted_text = Column(Text, default="")
    page_count = Column(Integer, default=0)
    pdf_data = Column(LargeBinary, nullable=True)  # original upload, needed for overlay export
    original_html = Column(Text, default="")
    html = Column(Text, default="")  # working document with accepted edits applied
    suggestions_json = Column(Text, default="[]")
    applied_edits_json = Column(Text, default="[]")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
