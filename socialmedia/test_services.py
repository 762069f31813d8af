"""
Unit tests for AccountService and MessageService.

The services are built on in-memory store doubles, so these tests cover the
business rules without a database.
"""

from typing import Dict, List, Optional

import pytest

from socialmedia.errors import (
    CredentialMismatchError,
    DuplicateUsernameError,
    InvalidMessageTextError,
    InvalidPasswordError,
    InvalidUsernameError,
    MessageNotFoundError,
    StorageError,
    UnknownAuthorError,
)
from socialmedia.schemas import Account, Message, MessageCreate
from socialmedia.services import AccountService, MessageService
from socialmedia.stores import AccountStore, MessageStore


class InMemoryAccountStore:
    def __init__(self):
        self.rows: Dict[int, Account] = {}
        self.inserts = 0

    def find_by_username(self, username: str) -> Optional[Account]:
        return next((a for a in self.rows.values() if a.username == username), None)

    def find_by_id(self, account_id: int) -> Optional[Account]:
        return self.rows.get(account_id)

    def exists_by_id(self, account_id: int) -> bool:
        return account_id in self.rows

    def insert(self, username: str, password: str) -> Account:
        if self.find_by_username(username) is not None:
            raise DuplicateUsernameError(username)
        self.inserts += 1
        account = Account(account_id=len(self.rows) + 1, username=username, password=password)
        self.rows[account.account_id] = account
        return account

    def find_by_credentials(self, username: str, password: str) -> Optional[Account]:
        account = self.find_by_username(username)
        if account is not None and account.password == password:
            return account
        return None

    def find_all(self) -> List[Account]:
        return [self.rows[key] for key in sorted(self.rows)]

    def update(self, account_id: int, username: str, password: str) -> bool:
        if account_id not in self.rows:
            return False
        owner = self.find_by_username(username)
        if owner is not None and owner.account_id != account_id:
            raise DuplicateUsernameError(username)
        self.rows[account_id] = Account(account_id=account_id, username=username, password=password)
        return True

    def delete(self, account_id: int) -> bool:
        return self.rows.pop(account_id, None) is not None


class InMemoryMessageStore:
    def __init__(self):
        self.rows: Dict[int, Message] = {}
        self.next_id = 1
        self.deletes: List[int] = []
        self.updates: List[int] = []

    def find_all(self) -> List[Message]:
        return [self.rows[key] for key in sorted(self.rows)]

    def find_by_id(self, message_id: int) -> Optional[Message]:
        return self.rows.get(message_id)

    def find_by_account_id(self, account_id: int) -> List[Message]:
        return [m for m in self.find_all() if m.posted_by == account_id]

    def insert(self, posted_by: int, message_text: str, time_posted_epoch: int) -> Message:
        message = Message(
            message_id=self.next_id,
            posted_by=posted_by,
            message_text=message_text,
            time_posted_epoch=time_posted_epoch,
        )
        self.rows[message.message_id] = message
        self.next_id += 1
        return message

    def update_text(self, message_id: int, new_text: str) -> bool:
        self.updates.append(message_id)
        if message_id not in self.rows:
            return False
        self.rows[message_id] = self.rows[message_id].model_copy(update={"message_text": new_text})
        return True

    def delete(self, message_id: int) -> bool:
        self.deletes.append(message_id)
        return self.rows.pop(message_id, None) is not None


class BrokenAccountStore(InMemoryAccountStore):
    def find_by_username(self, username: str) -> Optional[Account]:
        raise StorageError("find account by username failed")

    def exists_by_id(self, account_id: int) -> bool:
        raise StorageError("check account exists failed")


@pytest.fixture
def accounts():
    return InMemoryAccountStore()


@pytest.fixture
def messages():
    return InMemoryMessageStore()


@pytest.fixture
def account_service(accounts):
    return AccountService(accounts)


@pytest.fixture
def message_service(messages, accounts):
    return MessageService(messages, accounts)


@pytest.fixture
def author(account_service) -> Account:
    return account_service.register_account("alice", "pass1")


class TestAccountService:

    def test_register_returns_new_account(self, account_service):
        account = account_service.register_account("alice", "pass1")

        assert account.account_id == 1
        assert account.username == "alice"
        assert account.password == "pass1"

    @pytest.mark.parametrize("username", ["", " ", "\t"])
    def test_blank_username(self, account_service, accounts, username):
        with pytest.raises(InvalidUsernameError):
            account_service.register_account(username, "pass1")
        assert accounts.inserts == 0

    def test_short_password(self, account_service, accounts):
        with pytest.raises(InvalidPasswordError):
            account_service.register_account("alice", "abc")
        assert accounts.inserts == 0

    def test_duplicate_username(self, account_service, accounts):
        account_service.register_account("alice", "pass1")

        with pytest.raises(DuplicateUsernameError):
            account_service.register_account("alice", "pass2")
        assert accounts.inserts == 1

    def test_blank_username_checked_before_password(self, account_service):
        with pytest.raises(InvalidUsernameError):
            account_service.register_account(" ", "ab")

    def test_login_exact_match(self, account_service):
        created = account_service.register_account("alice", "pass1")

        assert account_service.login("alice", "pass1") == created

    @pytest.mark.parametrize("username,password", [("alice", "PASS1"), ("alice ", "pass1"), ("bob", "pass1")])
    def test_login_mismatch(self, account_service, username, password):
        account_service.register_account("alice", "pass1")

        with pytest.raises(CredentialMismatchError):
            account_service.login(username, password)

    def test_storage_failure_propagates(self):
        service = AccountService(BrokenAccountStore())

        with pytest.raises(StorageError):
            service.register_account("alice", "pass1")


class TestMessageServiceCreate:

    def test_create_echoes_input(self, message_service, author):
        message = message_service.create_message(
            MessageCreate(posted_by=author.account_id, message_text="hi", time_posted_epoch=10)
        )

        assert message.message_id == 1
        assert message.posted_by == author.account_id
        assert message.message_text == "hi"
        assert message.time_posted_epoch == 10

    def test_create_fills_in_timestamp(self, message_service, author, monkeypatch):
        monkeypatch.setattr("socialmedia.services.current_epoch", lambda: 1234)

        message = message_service.create_message(MessageCreate(posted_by=author.account_id, message_text="hi"))

        assert message.time_posted_epoch == 1234

    @pytest.mark.parametrize("text", ["", "  ", "y" * 255])
    def test_invalid_text(self, message_service, messages, author, text):
        with pytest.raises(InvalidMessageTextError):
            message_service.create_message(MessageCreate(posted_by=author.account_id, message_text=text))
        assert messages.rows == {}

    def test_unknown_author(self, message_service, messages):
        with pytest.raises(UnknownAuthorError):
            message_service.create_message(MessageCreate(posted_by=7, message_text="hi"))
        assert messages.rows == {}

    def test_author_check_storage_failure_propagates(self, messages):
        service = MessageService(messages, BrokenAccountStore())

        with pytest.raises(StorageError):
            service.create_message(MessageCreate(posted_by=1, message_text="hi"))


class TestMessageServiceReadDelete:

    @pytest.fixture
    def posted(self, message_service, author) -> Message:
        return message_service.create_message(
            MessageCreate(posted_by=author.account_id, message_text="hello", time_posted_epoch=1)
        )

    def test_get_all_on_empty_store(self, message_service):
        assert message_service.get_all_messages() == []

    def test_get_by_account(self, message_service, posted, author):
        assert message_service.get_messages_by_account_id(author.account_id) == [posted]
        assert message_service.get_messages_by_account_id(99) == []

    def test_delete_returns_snapshot(self, message_service, posted):
        assert message_service.delete_message(posted.message_id) == posted
        assert message_service.get_message_by_id(posted.message_id) is None

    def test_delete_missing_does_not_call_store(self, message_service, messages):
        assert message_service.delete_message(5) is None
        assert messages.deletes == []

    def test_delete_lost_race_returns_none(self, message_service, messages, posted):
        # Row is found by the read but already gone when the delete runs
        messages.delete = lambda message_id: False

        assert message_service.delete_message(posted.message_id) is None


class TestMessageServiceUpdate:

    @pytest.fixture
    def posted(self, message_service, author) -> Message:
        return message_service.create_message(
            MessageCreate(posted_by=author.account_id, message_text="hello", time_posted_epoch=1)
        )

    def test_update_returns_reread_row(self, message_service, posted):
        updated = message_service.update_message_text("changed", posted.message_id)

        assert updated.message_text == "changed"
        assert updated.message_id == posted.message_id
        assert updated.posted_by == posted.posted_by

    def test_update_missing_message(self, message_service, messages):
        with pytest.raises(MessageNotFoundError):
            message_service.update_message_text("changed", 3)
        assert messages.updates == []

    @pytest.mark.parametrize("text", ["", "   ", "z" * 255])
    def test_update_invalid_text(self, message_service, messages, posted, text):
        with pytest.raises(InvalidMessageTextError):
            message_service.update_message_text(text, posted.message_id)
        assert messages.updates == []
        assert messages.rows[posted.message_id].message_text == "hello"

    def test_update_lost_race(self, message_service, messages, posted):
        messages.update_text = lambda message_id, new_text: False

        with pytest.raises(MessageNotFoundError):
            message_service.update_message_text("changed", posted.message_id)


def contract_methods(protocol) -> List[str]:
    return sorted(name for name, value in vars(protocol).items() if callable(value) and not name.startswith("_"))


class TestStoreDoubles:
    """The in-memory stores implement every operation of the store contracts."""

    @pytest.mark.parametrize("double,protocol", [
        (InMemoryAccountStore, AccountStore),
        (InMemoryMessageStore, MessageStore),
    ])
    def test_double_covers_contract(self, double, protocol):
        missing = [name for name in contract_methods(protocol) if not callable(getattr(double, name, None))]

        assert contract_methods(protocol)
        assert missing == []

    def test_account_double_update_and_delete(self, accounts):
        alice = accounts.insert("alice", "pass1")
        bob = accounts.insert("bob", "pass2")

        with pytest.raises(DuplicateUsernameError):
            accounts.update(bob.account_id, "alice", "pass2")
        assert accounts.update(alice.account_id, "alicia", "pass9") is True
        assert accounts.delete(bob.account_id) is True
        assert accounts.find_all() == [Account(account_id=alice.account_id, username="alicia", password="pass9")]


class TestTextRules:
    """Lengths count UTF-16 code units; non-breaking spaces are content."""

    def test_emoji_count_as_two_units(self, message_service, author):
        with pytest.raises(InvalidMessageTextError):
            message_service.create_message(
                MessageCreate(posted_by=author.account_id, message_text="\U0001F600" * 128)
            )

    def test_emoji_within_limit_accepted(self, message_service, author):
        text = "\U0001F600" * 127

        message = message_service.create_message(MessageCreate(posted_by=author.account_id, message_text=text))

        assert message.message_text == text

    def test_non_breaking_space_is_not_blank(self, message_service, author):
        message = message_service.create_message(
            MessageCreate(posted_by=author.account_id, message_text="\u00a0")
        )

        assert message.message_text == "\u00a0"

    def test_update_uses_same_length_rule(self, message_service, author):
        posted = message_service.create_message(MessageCreate(posted_by=author.account_id, message_text="hi"))

        with pytest.raises(InvalidMessageTextError):
            message_service.update_message_text("\U0001F600" * 128, posted.message_id)

    def test_two_emoji_password_is_long_enough(self, account_service):
        account = account_service.register_account("alice", "\U0001F600\U0001F601")

        assert account.password == "\U0001F600\U0001F601"

    def test_three_accented_characters_too_short(self, account_service):
        with pytest.raises(InvalidPasswordError):
            account_service.register_account("alice", "ééé")
