"""
Job run registry: one row per (job name, run date)
"""
from sqlalchemy import Column, Integer, Date, DateTime, String, Text, JSON, UniqueConstraint
from geoattend.db.base import Base
import enum


class JobRunStatus(str, enum.Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class JobRun(Base):
    __tablename__ = "job_runs"

    id = Column(Integer, primary_key=True, index=True)
    job_name = Column(String(64), nullable=False, index=True)
    run_date = Column(Date, nullable=False, index=True)
    status = Column(String(20), nullable=False, default=JobRunStatus.RUNNING.value)
    execution_id = Column(String(64), nullable=False, unique=True)
    error = Column(Text, nullable=True)
    summary_json = Column(JSON, nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=False)
    finished_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("job_name", "run_date", name="uq_job_run_name_date"),
    )
