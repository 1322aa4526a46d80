#!/usr/bin/env python3
"""
Create the database tables (documents, audit_records).
"""
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from app.database import engine, Base
from app.models import Document, AuditRecordRow  # noqa: F401
from app.config import settings


def init_db():
    """Initialize database"""
    print(f"Creating database tables on {settings.database_url.split('@')[-1]}...")
    Base.metadata.create_all(bind=engine)
    print(f"Tables: {', '.join(sorted(Base.metadata.tables))}")
    print("Database initialization complete!")


if __name__ == "__main__":
    init_db()
