""" Payment ledger replay.

Writing to stdout
Example::
payment-ledger <NAME>.csv

Writing to file
Example::
python -m payment_ledger.payment_engine <NAME>.csv > <NAME>.csv

"""
import logging
import sys

import pandas

from payment_ledger.amount import Amount, EngineError
from payment_ledger.ledger import (ClientId, Chargeback, Deposit, Dispute, LedgerEngine, Resolve,
                                   TransactionId, Withdrawal)


class ClientsBalancesReporter:

    """Report all clients' balances."""

    def __init__(self, accounts):
        self._accounts = accounts

    @staticmethod
    def get_header():
        """Get fields names."""
        return 'client,available,held,total,locked'

    @staticmethod
    def get_balance(account):
        """Get single client's balance."""
        locked = 'true' if account.locked else 'false'
        return f'{account.client},{account.available},{account.held},{account.total},{locked}'

    def get_balances(self):
        """Get all clients' balances."""
        for account in self._accounts:
            yield self.get_balance(account)


class CmdParser:

    """Parse command line execution arguments."""

    def __init__(self):
        self._data = sys.argv[1:]
        self._input_file = ''
        self._update()

    def _update(self):
        if self._data:
            self._input_file = self._data[0]

    @property
    def input_file(self):
        """Get input file name."""
        return self._input_file


class CsvTransactionsReader:

    """Read transactions from csv."""

    COLUMNS = ('type', 'client', 'tx', 'amount')

    def __init__(self, path):
        self._path = path

    def _get_record_from_file(self):
        reader = pandas.read_csv(self._path, iterator=True, chunksize=1, dtype=str,
                                 keep_default_na=False, skipinitialspace=True, on_bad_lines='warn')
        for row in reader:
            if row.empty:
                continue
            row = row.rename(columns=str.strip)
            yield [self._get_field(row, column) for column in self.COLUMNS]
        logging.info('All transactions processed')

    @staticmethod
    def _get_field(row, column):
        if column not in row:
            return ''
        value = row[column].values[0]
        if pandas.isna(value):
            return ''
        return str(value).strip()

    def get(self):
        """Get chunk of data."""
        return self._get_record_from_file()


class TransactionType:

    """Transaction Types."""

    DEPOSIT = 'deposit'
    WITHDRAWAL = 'withdrawal'
    DISPUTE = 'dispute'
    RESOLVE = 'resolve'
    CHARGEBACK = 'chargeback'
    ALLTYPES = {DEPOSIT, WITHDRAWAL, DISPUTE, RESOLVE, CHARGEBACK}
    EVENTS = {DEPOSIT: Deposit, WITHDRAWAL: Withdrawal, DISPUTE: Dispute,
              RESOLVE: Resolve, CHARGEBACK: Chargeback}
    WITH_AMOUNT = {DEPOSIT, WITHDRAWAL}


class TransactionsCreator:

    """Create valid transaction events."""

    def __init__(self, input_reader, validator):
        self._input_reader = input_reader
        self._validator = validator

    def get(self):
        """Get valid transaction event."""
        for record in self._input_reader.get():
            try:
                event = self._create(*record)
            except ValueError as error:
                logging.error(f'Malformed transaction {record}: {error}')
                continue
            if self._validator.is_valid(event):
                yield event

    @staticmethod
    def _create(transaction_type, client_id, transaction_id, amount):
        transaction_type = transaction_type.lower()
        if transaction_type not in TransactionType.ALLTYPES:
            raise ValueError(f'Unknown transaction type {transaction_type!r}')

        event_class = TransactionType.EVENTS[transaction_type]
        client, tx = ClientId(client_id), TransactionId(transaction_id)
        if transaction_type in TransactionType.WITH_AMOUNT:
            if not amount:
                raise ValueError('Missing amount')
            return event_class(client, tx, Amount.parse(amount))
        return event_class(client, tx)


class TransactionValidator:

    """Validate transaction data correctness."""

    def is_valid(self, event):
        """Check transaction correctness."""
        if self._is_greater_than_zero(event):
            return True
        logging.error(f'Amount must be greater than zero: {event}')
        return False

    @staticmethod
    def _is_greater_than_zero(event):
        if isinstance(event, (Deposit, Withdrawal)):
            return event.amount > Amount.zero()
        return True


class Reporter:

    """Report data provided."""

    @staticmethod
    def write(data):
        """Write data provided."""
        print(data, flush=True)


class PaymentsEngine:

    """Replay transactions and report final balances."""

    def __init__(self, input_data, output, ledger=None):
        self._transactions_parser = TransactionsCreator(input_data, TransactionValidator())
        self._ledger = ledger if ledger is not None else LedgerEngine()
        self._output = output

    def run(self):
        """Handle transactions."""
        for event in self._transactions_parser.get():
            try:
                self._ledger.apply(event)
            except EngineError as error:
                logging.error(f'Failed to process {event}: {error}')

        balances_reporter = ClientsBalancesReporter(self._ledger.snapshot())

        self._output.write(balances_reporter.get_header())

        for balance in balances_reporter.get_balances():
            self._output.write(balance)


def main():
    """Run payment ledger."""

    logging.basicConfig(format='%(levelname)s:%(message)s')
    logging.getLogger().setLevel(logging.DEBUG)

    parser = CmdParser()
    if not parser.input_file:
        sys.exit('Usage: payment-ledger <transactions.csv>')
    bank = PaymentsEngine(CsvTransactionsReader(parser.input_file), Reporter())
    bank.run()


if __name__ == '__main__':
    main()
