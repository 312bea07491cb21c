# database/simple_connection.py
# Storage for per-form field mappings and the activity log

import logging
from typing import Dict, List, Any, Optional
import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from database.models import Base, FormFieldMapping, ActivityLog

logger = logging.getLogger(__name__)

class SimpleDatabase:
    def __init__(self, db_path: Optional[str] = None):
        if db_path:
            self.db_path = db_path
        elif "DATABASE_URL" not in os.environ:
            # Keep the database next to the project, not the working directory
            project_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
            db_file_path = os.path.join(project_dir, "form_router.db")
            self.db_path = f"sqlite:///{db_file_path}"
        else:
            self.db_path = os.getenv("DATABASE_URL")

        logger.info(f"📁 Using database: {self.db_path}")
        self.engine = create_engine(
            self.db_path,
            echo=False,  # Set to True for SQL debugging
            connect_args={"check_same_thread": False} if "sqlite" in self.db_path else {}
        )
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        self.init_database()

    def _get_conn(self) -> Session:
        return self.SessionLocal()

    def init_database(self):
        """Create tables if they do not exist yet"""
        Base.metadata.create_all(self.engine)
        logger.info("✅ Database tables ready")

    # =======================
    # FIELD MAPPINGS
    # =======================

    def get_form_mapping_rows(self, form_id: str) -> List[Dict[str, str]]:
        """Stored rows for a form in position order, empty when none are saved"""
        session = self._get_conn()
        try:
            rows = (
                session.query(FormFieldMapping)
                .filter(FormFieldMapping.form_id == form_id)
                .order_by(FormFieldMapping.position)
                .all()
            )
            return [
                {
                    "source_field": row.source_field,
                    "target_field": row.target_field,
                    "custom_key": row.custom_key or "",
                }
                for row in rows
            ]
        finally:
            session.close()

    def replace_form_mapping_rows(self, form_id: str, rows: List[Dict[str, str]]) -> int:
        """Replace all rows for a form in one transaction"""
        session = self._get_conn()
        try:
            session.query(FormFieldMapping).filter(FormFieldMapping.form_id == form_id).delete()
            for position, row in enumerate(rows):
                session.add(FormFieldMapping(
                    form_id=form_id,
                    position=position,
                    source_field=row["source_field"],
                    target_field=row["target_field"],
                    custom_key=row.get("custom_key", ""),
                ))
            session.commit()
            return len(rows)
        except Exception as e:
            logger.error(f"❌ Error saving field mapping for form {form_id}: {e}")
            session.rollback()
            raise
        finally:
            session.close()

    def delete_form_mapping_rows(self, form_id: str) -> int:
        session = self._get_conn()
        try:
            deleted = session.query(FormFieldMapping).filter(FormFieldMapping.form_id == form_id).delete()
            session.commit()
            return deleted
        except Exception as e:
            logger.error(f"❌ Error deleting field mapping for form {form_id}: {e}")
            session.rollback()
            raise
        finally:
            session.close()

    # =======================
    # ACTIVITY LOG
    # =======================

    def log_activity(self, event_type: str, event_data: Dict[str, Any] = None,
                     form_id: str = None, contact_id: str = None,
                     success: bool = True, message: str = None) -> str:
        """Log activity to database"""
        session = self._get_conn()
        try:
            entry = ActivityLog(
                event_type=event_type,
                form_id=form_id,
                contact_id=contact_id,
                success=success,
                message=message,
                event_data=event_data or {},
            )
            session.add(entry)
            session.commit()
            return entry.id

        except Exception as e:
            logger.error(f"❌ Error logging activity: {e}")
            session.rollback()
            return ""
        finally:
            session.close()

    def get_recent_activity(self, limit: int = 50, form_id: Optional[str] = None) -> List[Dict[str, Any]]:
        session = self._get_conn()
        try:
            query = session.query(ActivityLog)
            if form_id:
                query = query.filter(ActivityLog.form_id == form_id)
            entries = query.order_by(ActivityLog.created_at.desc()).limit(limit).all()
            return [
                {
                    "id": entry.id,
                    "event_type": entry.event_type,
                    "form_id": entry.form_id,
                    "contact_id": entry.contact_id,
                    "success": entry.success,
                    "message": entry.message,
                    "event_data": entry.event_data or {},
                    "created_at": entry.created_at.isoformat() if entry.created_at else None,
                }
                for entry in entries
            ]
        finally:
            session.close()
