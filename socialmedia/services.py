"""
Business rules for accounts and messages.

Services validate input and orchestrate store calls. They keep no state
between calls: every operation re-reads the stores it was built with.
Rejections are raised as ValidationFailure subclasses (or
CredentialMismatchError for login); StorageError from the stores is
propagated unchanged.
"""

import logging
from typing import List, Optional

from socialmedia.errors import (
    CredentialMismatchError,
    DuplicateUsernameError,
    InvalidMessageTextError,
    InvalidPasswordError,
    InvalidUsernameError,
    MessageNotFoundError,
    UnknownAuthorError,
)
from socialmedia.schemas import Account, Message, MessageCreate
from socialmedia.stores import AccountStore, MessageStore
from socialmedia.utils import current_epoch, is_blank, is_valid_message_text, is_valid_password

logger = logging.getLogger(__name__)


class AccountService:
    """Registration and login."""

    def __init__(self, accounts: AccountStore):
        self.accounts = accounts

    def register_account(self, username: str, password: str) -> Account:
        """
        Register a new account.

        Checks, in order: blank username, short password, taken username.

        Raises:
            InvalidUsernameError, InvalidPasswordError, DuplicateUsernameError
        """
        if is_blank(username):
            logger.info("Registration rejected: blank username")
            raise InvalidUsernameError("username must not be blank")
        if not is_valid_password(password):
            logger.info(f"Registration rejected: short password for {username}")
            raise InvalidPasswordError("password must be at least 4 characters")
        if self.accounts.find_by_username(username) is not None:
            logger.info(f"Registration rejected: duplicate username {username}")
            raise DuplicateUsernameError(f"username '{username}' already exists")

        account = self.accounts.insert(username, password)
        logger.info(f"Account registered: id={account.account_id}")
        return account

    def login(self, username: str, password: str) -> Account:
        account = self.accounts.find_by_credentials(username, password)
        if account is None:
            logger.info(f"Login failed for username {username}")
            raise CredentialMismatchError("invalid username or password")
        logger.info(f"Login succeeded: id={account.account_id}")
        return account


class MessageService:
    """Message validation and CRUD orchestration."""

    def __init__(self, messages: MessageStore, accounts: AccountStore):
        self.messages = messages
        self.accounts = accounts

    def create_message(self, message: MessageCreate) -> Message:
        """
        Validate and store a new message.

        The text must be non-blank and shorter than 255 characters, and
        posted_by must reference an existing account. Nothing is written
        unless both hold.

        Raises:
            InvalidMessageTextError, UnknownAuthorError
        """
        if not is_valid_message_text(message.message_text):
            logger.info("Message rejected: invalid text")
            raise InvalidMessageTextError("message_text must be 1-254 non-blank characters")
        if not self.accounts.exists_by_id(message.posted_by):
            logger.info(f"Message rejected: unknown author {message.posted_by}")
            raise UnknownAuthorError(f"account {message.posted_by} does not exist")

        time_posted = message.time_posted_epoch
        if time_posted is None:
            time_posted = current_epoch()
        return self.messages.insert(message.posted_by, message.message_text, time_posted)

    def get_all_messages(self) -> List[Message]:
        return self.messages.find_all()

    def get_message_by_id(self, message_id: int) -> Optional[Message]:
        return self.messages.find_by_id(message_id)

    def delete_message(self, message_id: int) -> Optional[Message]:
        """
        Delete a message and return what it held before deletion.

        Returns None, without attempting a delete, when the message does not
        exist. Also returns None when another request removed the row between
        the read and the delete.
        """
        message = self.messages.find_by_id(message_id)
        if message is None:
            return None
        if not self.messages.delete(message_id):
            logger.info(f"Message {message_id} vanished before delete")
            return None
        return message

    def update_message_text(self, new_text: str, message_id: int) -> Message:
        """
        Replace the text of an existing message and return the updated row.

        Raises:
            MessageNotFoundError: no message with this id
            InvalidMessageTextError: new_text fails the creation rule
        """
        if self.messages.find_by_id(message_id) is None:
            logger.info(f"Update rejected: message {message_id} not found")
            raise MessageNotFoundError(f"message {message_id} does not exist")
        if not is_valid_message_text(new_text):
            logger.info(f"Update rejected: invalid text for message {message_id}")
            raise InvalidMessageTextError("message_text must be 1-254 non-blank characters")

        if not self.messages.update_text(message_id, new_text):
            raise MessageNotFoundError(f"message {message_id} does not exist")
        updated = self.messages.find_by_id(message_id)
        if updated is None:
            raise MessageNotFoundError(f"message {message_id} does not exist")
        return updated

    def get_messages_by_account_id(self, account_id: int) -> List[Message]:
        return self.messages.find_by_account_id(account_id)
