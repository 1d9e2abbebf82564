""" Ledger engine.

Replays deposits, withdrawals, disputes, resolves and chargebacks one at a
time, in arrival order, and keeps the resulting client accounts.

Business rule violations (unknown transaction, wrong client, wrong dispute
state, locked account, not enough funds) only drop the event. Arithmetic
failures raise EngineError and leave the ledger untouched.

"""
import enum
import logging
from dataclasses import dataclass

import numpy

from payment_ledger.amount import Amount


class _Identifier(int):

    """Unsigned identifier restricted to the range of a numpy integer type."""

    DTYPE = numpy.uint64

    def __new__(cls, value):
        value = int(value)
        limits = numpy.iinfo(cls.DTYPE)
        if not int(limits.min) <= value <= int(limits.max):
            raise ValueError(f'{cls.__name__} out of range: {value}')
        return super().__new__(cls, value)

    def __str__(self):
        return str(int(self))

    def __repr__(self):
        return f'{type(self).__name__}({int(self)})'


class ClientId(_Identifier):

    """Client identifier."""

    DTYPE = numpy.uint16


class TransactionId(_Identifier):

    """Deposit or withdrawal identifier, unique across the whole stream."""

    DTYPE = numpy.uint32


@dataclass(frozen=True)
class Deposit:

    """Credit funds to client's account."""

    client: ClientId
    tx: TransactionId
    amount: Amount


@dataclass(frozen=True)
class Withdrawal:

    """Debit funds from client's account."""

    client: ClientId
    tx: TransactionId
    amount: Amount


@dataclass(frozen=True)
class Dispute:

    """Claim against a processed deposit or withdrawal."""

    client: ClientId
    tx: TransactionId


@dataclass(frozen=True)
class Resolve:

    """Release held funds of a disputed transaction."""

    client: ClientId
    tx: TransactionId


@dataclass(frozen=True)
class Chargeback:

    """Reverse a disputed transaction and lock the account."""

    client: ClientId
    tx: TransactionId


class TransactionKind(enum.Enum):

    """Stored transaction types."""

    DEPOSIT = 'deposit'
    WITHDRAWAL = 'withdrawal'


class TransactionStatus(enum.Enum):

    """Dispute lifecycle of a deposit or withdrawal."""

    PROCESSED = 'processed'
    IN_DISPUTE = 'in_dispute'
    DISPUTE_HANDLED = 'dispute_handled'


@dataclass
class TransactionRecord:

    """Deposit or withdrawal kept for later disputes."""

    id: TransactionId
    client: ClientId
    amount: Amount
    kind: TransactionKind
    status: TransactionStatus = TransactionStatus.PROCESSED


@dataclass(frozen=True)
class AccountState:

    """Read-only view of an account at snapshot time."""

    client: ClientId
    available: Amount
    held: Amount
    total: Amount
    locked: bool


class Account:

    """Client's balance."""

    def __init__(self, client):
        self.client = client
        self.available = Amount.zero()
        self.held = Amount.zero()
        self.total = Amount.zero()
        self.locked = False

    def state(self):
        """Get immutable copy of the balance."""
        return AccountState(self.client, self.available, self.held, self.total, self.locked)


class LedgerEngine:

    """Apply transaction events to client accounts."""

    def __init__(self):
        self._accounts = {}
        self._transactions = {}

    def apply(self, event):
        """Apply next event of the stream.

        Rejected events are dropped silently. AmountOverflow or AmountUnderflow
        is raised when the event cannot be applied without leaving the
        representable range; nothing is changed in that case.
        """
        if isinstance(event, Deposit):
            self._deposit(event)
        elif isinstance(event, Withdrawal):
            self._withdrawal(event)
        elif isinstance(event, Dispute):
            self._dispute(event)
        elif isinstance(event, Resolve):
            self._resolve(event)
        elif isinstance(event, Chargeback):
            self._chargeback(event)
        else:
            raise TypeError(f'Unsupported transaction event: {event!r}')

    def snapshot(self):
        """Get all accounts, ordered by client's first appearance."""
        return [account.state() for account in self._accounts.values()]

    def transaction(self, tx):
        """Get stored deposit or withdrawal record, None if unknown."""
        return self._transactions.get(tx)

    def _deposit(self, event):
        account = self._accounts.get(event.client)
        if account is not None and account.locked:
            logging.error(f'Client {event.client} account is locked, deposit {event.tx} rejected')
            return
        if not self._is_acceptable(event):
            return

        if account is None:
            account = Account(event.client)
        available = account.available.checked_add(event.amount)
        total = account.total.checked_add(event.amount)

        self._accounts.setdefault(event.client, account)
        account.available, account.total = available, total
        self._store(event, TransactionKind.DEPOSIT)

    def _withdrawal(self, event):
        account = self._accounts.get(event.client)
        if account is None:
            logging.error(f'Unknown client {event.client}, withdrawal {event.tx} rejected')
            return
        if account.locked:
            logging.error(f'Client {event.client} account is locked, withdrawal {event.tx} rejected')
            return
        if not self._is_acceptable(event):
            return
        if account.available < event.amount:
            logging.error(f'Not enough funds available for withdrawal {event.tx}')
            return

        available = account.available.checked_sub(event.amount)
        total = account.total.checked_sub(event.amount)

        account.available, account.total = available, total
        self._store(event, TransactionKind.WITHDRAWAL)

    def _dispute(self, event):
        found = self._find_disputable(event, TransactionStatus.PROCESSED)
        if found is None:
            logging.error(f'Dispute of transaction {event.tx} not possible')
            return
        account, record = found

        # Available may become negative here.
        held = account.held.checked_add(record.amount)
        available = account.available.checked_sub(record.amount)

        account.available, account.held = available, held
        record.status = TransactionStatus.IN_DISPUTE

    def _resolve(self, event):
        found = self._find_disputable(event, TransactionStatus.IN_DISPUTE)
        if found is None:
            logging.error(f'Resolve of transaction {event.tx} not possible')
            return
        account, record = found

        held = account.held.checked_sub(record.amount)
        available = account.available.checked_add(record.amount)

        account.available, account.held = available, held
        record.status = TransactionStatus.DISPUTE_HANDLED

    def _chargeback(self, event):
        found = self._find_disputable(event, TransactionStatus.IN_DISPUTE)
        if found is None:
            logging.error(f'Chargeback of transaction {event.tx} not possible')
            return
        account, record = found

        held = account.held.checked_sub(record.amount)
        total = account.total.checked_sub(record.amount)

        account.held, account.total = held, total
        account.locked = True
        record.status = TransactionStatus.DISPUTE_HANDLED

    def _is_acceptable(self, event):
        if event.tx in self._transactions:
            logging.error(f'Duplicated transaction id {event.tx}')
            return False
        if event.amount.is_negative():
            logging.error(f'Negative amount {event.amount} in transaction {event.tx}')
            return False
        return True

    def _find_disputable(self, event, expected_status):
        record = self._transactions.get(event.tx)
        if record is None or record.client != event.client:
            return None
        account = self._accounts[record.client]
        if account.locked or record.status is not expected_status:
            return None
        return account, record

    def _store(self, event, kind):
        self._transactions[event.tx] = TransactionRecord(event.tx, event.client, event.amount, kind)
