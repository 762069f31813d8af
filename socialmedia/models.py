"""
SQLAlchemy ORM models for database tables.

This module contains database table definitions using SQLAlchemy.
For Pydantic request/response schemas, see schemas.py.
"""

from sqlalchemy import BigInteger, Column, Integer, String

from socialmedia.storage import Base


class AccountRecord(Base):
    """
    SQLAlchemy model for registered accounts.

    Table: account
    The unique constraint on username backs the duplicate check
    done by the registration service.
    """
    __tablename__ = "account"

    account_id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), nullable=False, unique=True)
    password = Column(String(255), nullable=False)


class MessageRecord(Base):
    """
    SQLAlchemy model for posted messages.

    Table: message
    posted_by is a plain column, not a foreign key: the author is checked
    when the message is created and later account changes do not touch it.
    """
    __tablename__ = "message"

    message_id = Column(Integer, primary_key=True, autoincrement=True)
    posted_by = Column(Integer, nullable=False, index=True)
    message_text = Column(String(255), nullable=False)
    time_posted_epoch = Column(BigInteger, nullable=False)
