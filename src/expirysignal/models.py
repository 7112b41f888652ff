from sqlalchemy import BigInteger, Boolean, Column, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.sql import func

from .db import Base

# "No scope" is stored as '' so (subject, no scope) collides in the unique index.
NO_SCOPE = ""


class ExpiryRecordRow(Base):
    __tablename__ = "expiry_records"
    __table_args__ = (
        UniqueConstraint("subject", "scope", name="uq_expiry_records_subject_scope"),
    )

    # BigInteger does not autoincrement on SQLite; Integer variant keeps tests portable.
    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    subject = Column(Text, nullable=False)
    scope = Column(Text, nullable=False, server_default=NO_SCOPE)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    cause_code = Column(Text)
    renewable = Column(Boolean)
    note = Column(String(500))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
