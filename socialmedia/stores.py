"""
Persistence contracts and their SQLAlchemy implementations.

The services depend on the AccountStore and MessageStore protocols, not on
SQLAlchemy. The Sql* implementations are built on an explicitly injected
Session (one per request, see storage.get_db), which keeps them swappable
for in-memory doubles in tests.

Error contract
--------------

- "Not found" is a normal result: None for single lookups, [] for lists,
  False for conditional writes that matched no row.
- Any other database failure rolls the session back, is logged, and is
  raised as StorageError. It is never reported as "not found".
- Inserting a duplicate username raises DuplicateUsernameError; the unique
  constraint is the final word on username uniqueness.
"""

import logging
from typing import List, Optional, Protocol

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from socialmedia.errors import DuplicateUsernameError, StorageError
from socialmedia.models import AccountRecord, MessageRecord
from socialmedia.schemas import Account, Message

logger = logging.getLogger(__name__)


# =============================================================================
# Contracts
# =============================================================================

class AccountStore(Protocol):
    """Persist and query registered accounts."""

    def find_by_username(self, username: str) -> Optional[Account]:
        ...

    def find_by_id(self, account_id: int) -> Optional[Account]:
        ...

    def exists_by_id(self, account_id: int) -> bool:
        ...

    def insert(self, username: str, password: str) -> Account:
        """
        Insert a new account and return it with its generated id.

        Raises:
            DuplicateUsernameError: username is already taken
            StorageError: the write failed
        """
        ...

    def find_by_credentials(self, username: str, password: str) -> Optional[Account]:
        """Exact match on both username and password."""
        ...

    def find_all(self) -> List[Account]:
        ...

    def update(self, account_id: int, username: str, password: str) -> bool:
        ...

    def delete(self, account_id: int) -> bool:
        ...


class MessageStore(Protocol):
    """Persist and query posted messages."""

    def find_all(self) -> List[Message]:
        ...

    def find_by_id(self, message_id: int) -> Optional[Message]:
        ...

    def find_by_account_id(self, account_id: int) -> List[Message]:
        ...

    def insert(self, posted_by: int, message_text: str, time_posted_epoch: int) -> Message:
        ...

    def update_text(self, message_id: int, new_text: str) -> bool:
        """Replace the text of a message. False when no row matched."""
        ...

    def delete(self, message_id: int) -> bool:
        """Physically remove a message. False when no row matched."""
        ...


def _storage_failure(session: Session, action: str, exc: Exception) -> StorageError:
    """Roll back, log and wrap a database failure."""
    session.rollback()
    logger.error(f"Storage failure during {action}: {exc}")
    return StorageError(f"{action} failed")


# =============================================================================
# Account Repository
# =============================================================================

class SqlAccountStore:
    """AccountStore backed by the account table."""

    def __init__(self, session: Session):
        self.session = session

    def _first(self, action: str, *criteria) -> Optional[Account]:
        try:
            record = self.session.query(AccountRecord).filter(*criteria).first()
        except SQLAlchemyError as e:
            raise _storage_failure(self.session, action, e) from e
        return Account.model_validate(record) if record else None

    def find_by_username(self, username: str) -> Optional[Account]:
        logger.debug(f"Looking up account by username: {username}")
        return self._first("find account by username", AccountRecord.username == username)

    def find_by_id(self, account_id: int) -> Optional[Account]:
        logger.debug(f"Looking up account by id: {account_id}")
        return self._first("find account by id", AccountRecord.account_id == account_id)

    def exists_by_id(self, account_id: int) -> bool:
        try:
            count = (
                self.session.query(AccountRecord.account_id)
                .filter(AccountRecord.account_id == account_id)
                .count()
            )
        except SQLAlchemyError as e:
            raise _storage_failure(self.session, "check account exists", e) from e
        logger.debug(f"Account {account_id} exists: {count > 0}")
        return count > 0

    def insert(self, username: str, password: str) -> Account:
        logger.info(f"Inserting account: username={username}")
        record = AccountRecord(username=username, password=password)
        try:
            self.session.add(record)
            self.session.commit()
            self.session.refresh(record)
        except IntegrityError:
            # Lost the race against a concurrent registration
            self.session.rollback()
            logger.info(f"Duplicate username rejected by database: {username}")
            raise DuplicateUsernameError(f"username '{username}' already exists")
        except SQLAlchemyError as e:
            raise _storage_failure(self.session, "insert account", e) from e
        logger.info(f"Account created: id={record.account_id}")
        return Account.model_validate(record)

    def find_by_credentials(self, username: str, password: str) -> Optional[Account]:
        logger.debug(f"Looking up account by credentials: username={username}")
        return self._first(
            "find account by credentials",
            AccountRecord.username == username,
            AccountRecord.password == password,
        )

    def find_all(self) -> List[Account]:
        try:
            records = self.session.query(AccountRecord).order_by(AccountRecord.account_id.asc()).all()
        except SQLAlchemyError as e:
            raise _storage_failure(self.session, "list accounts", e) from e
        return [Account.model_validate(record) for record in records]

    def update(self, account_id: int, username: str, password: str) -> bool:
        logger.info(f"Updating account: id={account_id}")
        try:
            count = (
                self.session.query(AccountRecord)
                .filter(AccountRecord.account_id == account_id)
                .update(
                    {AccountRecord.username: username, AccountRecord.password: password},
                    synchronize_session=False,
                )
            )
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise DuplicateUsernameError(f"username '{username}' already exists")
        except SQLAlchemyError as e:
            raise _storage_failure(self.session, "update account", e) from e
        return count > 0

    def delete(self, account_id: int) -> bool:
        logger.info(f"Deleting account: id={account_id}")
        try:
            count = (
                self.session.query(AccountRecord)
                .filter(AccountRecord.account_id == account_id)
                .delete(synchronize_session=False)
            )
            self.session.commit()
        except SQLAlchemyError as e:
            raise _storage_failure(self.session, "delete account", e) from e
        return count > 0


# =============================================================================
# Message Repository
# =============================================================================

class SqlMessageStore:
    """MessageStore backed by the message table."""

    def __init__(self, session: Session):
        self.session = session

    def _list(self, action: str, *criteria) -> List[Message]:
        try:
            records = (
                self.session.query(MessageRecord)
                .filter(*criteria)
                .order_by(MessageRecord.message_id.asc())
                .all()
            )
        except SQLAlchemyError as e:
            raise _storage_failure(self.session, action, e) from e
        logger.debug(f"{action}: {len(records)} messages")
        return [Message.model_validate(record) for record in records]

    def find_all(self) -> List[Message]:
        return self._list("list messages")

    def find_by_id(self, message_id: int) -> Optional[Message]:
        try:
            record = (
                self.session.query(MessageRecord)
                .filter(MessageRecord.message_id == message_id)
                .first()
            )
        except SQLAlchemyError as e:
            raise _storage_failure(self.session, "find message by id", e) from e
        logger.debug(f"Message lookup {message_id}: {'found' if record else 'not found'}")
        return Message.model_validate(record) if record else None

    def find_by_account_id(self, account_id: int) -> List[Message]:
        return self._list("list messages by account", MessageRecord.posted_by == account_id)

    def insert(self, posted_by: int, message_text: str, time_posted_epoch: int) -> Message:
        logger.info(f"Inserting message: posted_by={posted_by}")
        record = MessageRecord(
            posted_by=posted_by,
            message_text=message_text,
            time_posted_epoch=time_posted_epoch,
        )
        try:
            self.session.add(record)
            self.session.commit()
            self.session.refresh(record)
        except SQLAlchemyError as e:
            raise _storage_failure(self.session, "insert message", e) from e
        logger.info(f"Message created: id={record.message_id}")
        return Message.model_validate(record)

    def update_text(self, message_id: int, new_text: str) -> bool:
        logger.info(f"Updating message text: id={message_id}")
        try:
            count = (
                self.session.query(MessageRecord)
                .filter(MessageRecord.message_id == message_id)
                .update({MessageRecord.message_text: new_text}, synchronize_session=False)
            )
            self.session.commit()
        except SQLAlchemyError as e:
            raise _storage_failure(self.session, "update message", e) from e
        return count > 0

    def delete(self, message_id: int) -> bool:
        logger.info(f"Deleting message: id={message_id}")
        try:
            count = (
                self.session.query(MessageRecord)
                .filter(MessageRecord.message_id == message_id)
                .delete(synchronize_session=False)
            )
            self.session.commit()
        except SQLAlchemyError as e:
            raise _storage_failure(self.session, "delete message", e) from e
        return count > 0
