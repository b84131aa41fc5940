from __future__ import annotations

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class FormModel(Base):
    __tablename__ = "forms"

    id = Column(String, primary_key=True)
    title = Column(String)
    fields = Column(Text)
    created_at = Column(DateTime(timezone=True), index=True)
    created_by = Column(String, index=True)


class SubmissionModel(Base):
    __tablename__ = "form_submissions"

    id = Column(String, primary_key=True)
    form_id = Column(String, index=True)
    user_id = Column(String, index=True)
    data = Column(Text)
    created_at = Column(DateTime(timezone=True))


class UserModel(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, unique=True, index=True)
    password_hash = Column(String)
    created_at = Column(DateTime(timezone=True))
