import pytest
from pydantic import ValidationError

from ledgersync.domain.enums import AuditLogOperation, DataSource, SyncStatus, TransactionType
from ledgersync.domain.models.ledger import ImportIndex
from ledgersync.exceptions import ParseError, RateLimitError


class TestEnumsAreStringMixin:
    """All enums use (str, Enum) so they serialize to strings in JSON and DB."""

    def test_operation_is_str(self):
        assert isinstance(AuditLogOperation.BUY, str)
        assert AuditLogOperation.BUY == "Buy"

    def test_transaction_type_is_str(self):
        assert TransactionType.SWAP == "Swap"

    def test_status_and_source(self):
        assert SyncStatus.CANCELLED == "CANCELLED"
        assert DataSource.CSV_IMPORT == "CSV_IMPORT"

    def test_unknown_label_falls_back(self):
        assert AuditLogOperation.from_label("Launchpool") == AuditLogOperation.UNKNOWN
        assert AuditLogOperation.from_label("Commission Rebate") == AuditLogOperation.COMMISSION_REBATE


class TestImportIndex:
    def test_orders_by_record_then_leg(self):
        keys = [ImportIndex(2, 0), ImportIndex(1, 10), ImportIndex(1, 2)]

        assert sorted(keys) == [ImportIndex(1, 2), ImportIndex(1, 10), ImportIndex(2, 0)]

    def test_next_leg(self):
        assert ImportIndex(4).next_leg() == ImportIndex(4, 1)
        assert str(ImportIndex(4, 1)) == "4.1"


class TestAuditLog:
    def test_frozen(self, make_log):
        log = make_log()

        with pytest.raises(ValidationError):
            log.change = "2"

    def test_amount_and_provenance(self, make_log):
        log = make_log(change="-1.25", connection_id=None, file_import_id="file-1")

        assert str(log.amount) == "-1.25"
        assert log.provenance_id == "file-1"


class TestExceptions:
    def test_parse_error_row(self):
        err = ParseError("bad amount", row=3)

        assert str(err) == "Cannot parse row 3: bad amount"
        assert err.row == 3

    def test_rate_limit_details(self):
        err = RateLimitError("Rate limited", used_weight="1200", retry_after="60")

        assert str(err) == "Rate limited (weight used: 1200, retry after: 60s)"
