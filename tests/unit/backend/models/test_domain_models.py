"""
Unit Tests for mission, transaction, receipt and user model behaviour.

Models are built in memory; column defaults only apply on flush, so
lifecycle fields are set explicitly.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from modules.backend.core.exceptions import InvalidStateTransitionError, ValidationError
from modules.backend.core.utils import utc_now
from modules.backend.models import Mission, Receipt, Transaction, User
from modules.backend.models.receipt import generate_receipt_number


def _mission(status: str = "pending") -> Mission:
    return Mission(
        user_id="u-1",
        type="carbon_offset",
        title="Carbon Footprint Challenge",
        impact=25,
        status=status,
        progress=0,
        logs=[],
    )


class TestMissionLifecycle:
    """Tests for the pending -> in_progress -> completed | failed machine."""

    def test_start(self):
        mission = _mission()
        mission.start()

        assert mission.is_in_progress
        assert mission.started_at is not None
        assert mission.logs[-1]["action"] == "start"
        assert mission.logs[-1]["status"] == "info"

    def test_start_twice(self):
        mission = _mission()
        mission.start()

        with pytest.raises(InvalidStateTransitionError, match="not in pending"):
            mission.start()

    def test_complete(self):
        mission = _mission()
        mission.start()
        mission.complete("CLV-TX-1")

        assert mission.is_completed
        assert mission.progress == 100
        assert mission.external_transaction_id == "CLV-TX-1"
        assert mission.logs[-1]["metadata"] == {"external_transaction_id": "CLV-TX-1"}

    def test_complete_requires_in_progress(self):
        with pytest.raises(InvalidStateTransitionError, match="not in progress"):
            _mission().complete("CLV-TX-1")

    def test_complete_requires_external_id(self):
        mission = _mission()
        mission.start()

        with pytest.raises(ValidationError, match="External transaction ID is required"):
            mission.complete("")
        assert mission.is_in_progress

    @pytest.mark.parametrize("status", ["pending", "in_progress"])
    def test_fail_from_open_states(self, status):
        mission = _mission(status)
        mission.fail("partner API timeout")

        assert mission.is_failed
        assert mission.failed_at is not None
        assert mission.logs[-1]["message"] == "Mission failed: partner API timeout"

    def test_fail_without_reason(self):
        mission = _mission()
        mission.fail()
        assert mission.logs[-1]["message"] == "Mission failed: Unknown error"

    @pytest.mark.parametrize("status", ["completed", "failed"])
    def test_terminal_states_cannot_fail(self, status):
        with pytest.raises(InvalidStateTransitionError, match=f"already {status}"):
            _mission(status).fail("again")

    def test_progress_is_clamped(self):
        mission = _mission("in_progress")

        mission.update_progress(140)
        assert mission.progress == 100
        mission.update_progress(-5, "rewound")
        assert mission.progress == 0
        assert mission.logs[-1]["message"] == "rewound"

    def test_logs_append_without_mutating_previous_list(self):
        """Should reassign the JSON list so SQLAlchemy sees the change."""
        mission = _mission()
        before = mission.logs
        mission.add_log("note", "warning", "Partner slow")

        assert before == []
        assert mission.logs[0]["status"] == "warning"

    def test_invalid_log_status(self):
        with pytest.raises(ValueError):
            _mission().add_log("note", "shouting", "x")

    def test_external_ids_and_blockchain_data(self):
        mission = _mission("in_progress")
        mission.set_external_ids(api_id="proj-7", transaction_id="TX-7")
        mission.set_blockchain_data("0x" + "ab" * 32, sbt_token_id="123")

        assert mission.external_api_id == "proj-7"
        assert mission.external_transaction_id == "TX-7"
        assert mission.sbt_token_id == "123"
        assert [entry["action"] for entry in mission.logs] == ["external_ids_set", "blockchain_data_set"]

    def test_duration_and_overdue(self):
        mission = _mission("in_progress")
        mission.started_at = utc_now() - timedelta(minutes=5)
        mission.deadline = utc_now() - timedelta(minutes=1)

        assert mission.duration >= timedelta(minutes=5)
        assert mission.is_overdue

    def test_duration_before_start(self):
        assert _mission().duration is None


class TestTransaction:
    """Tests for transaction amount rules and status changes."""

    def _tx(self, amount: str = "10000", status: str = "pending") -> Transaction:
        return Transaction(user_id="u-1", type="donation", amount=Decimal(amount), fee_amount=Decimal("300"), status=status)

    def test_total_amount(self):
        assert self._tx().total_amount == Decimal("10300")

    @pytest.mark.parametrize("amount", ["0", "-1", "1000001"])
    def test_amount_bounds(self, amount):
        with pytest.raises(ValidationError):
            self._tx(amount).validate_amount()

    def test_valid_amount(self):
        self._tx("1000000").validate_amount()

    def test_processing_then_completed(self):
        tx = self._tx()
        tx.mark_processing()
        tx.mark_completed("0xhash")

        assert tx.status == "completed"
        assert tx.processed_at is not None
        assert tx.blockchain_tx_hash == "0xhash"

    def test_completed_cannot_complete_again(self):
        with pytest.raises(InvalidStateTransitionError):
            self._tx(status="completed").mark_completed()

    def test_refund_only_completed(self):
        with pytest.raises(InvalidStateTransitionError):
            self._tx().mark_refunded()

        tx = self._tx(status="completed")
        tx.mark_refunded()
        assert tx.status == "refunded"
        assert tx.notes == "Refunded"

    def test_failure_appends_notes(self):
        tx = self._tx()
        tx.add_note("card declined once")
        tx.mark_failed("card declined")

        assert tx.status == "failed"
        assert tx.notes.startswith("card declined once\n[")
        assert tx.notes.endswith("Failed: card declined")

    def test_can_refund(self):
        assert self._tx().can_refund
        assert not self._tx(status="completed").can_refund


class TestReceipt:
    """Tests for tax receipt rules."""

    def _receipt(self, **fields) -> Receipt:
        values = {
            "user_id": "u-1",
            "type": "donation",
            "amount": Decimal("50000"),
            "receipt_number": "IMP-2026-000001",
            "issued_by": "1ClickImpact",
            "issued_at": utc_now(),
            "tax_deductible": True,
        }
        values.update(fields)
        return Receipt(**values)

    def test_receipt_number_format(self):
        number = generate_receipt_number(2026)
        assert number.startswith("IMP-2026-")
        assert len(number) == len("IMP-2026-000000")

    def test_valid_for_tax_deduction(self):
        receipt = self._receipt()
        assert receipt.is_valid_for_tax_deduction
        assert receipt.validate_for_tax_deduction() == []

    def test_expired_for_tax_deduction(self):
        receipt = self._receipt(issued_at=utc_now() - timedelta(days=6 * 365))
        assert not receipt.is_valid_for_tax_deduction

    def test_validation_reasons(self):
        receipt = self._receipt(tax_deductible=False, issued_by=None, amount=Decimal("0"))
        assert receipt.validate_for_tax_deduction() == [
            "Receipt is not tax deductible",
            "Issuer is missing",
            "Amount must be greater than zero",
        ]

    def test_deductible_amount_is_capped_by_income(self):
        receipt = self._receipt(amount=Decimal("50000"))
        assert receipt.get_deductible_amount(100000) == Decimal("30000.0")
        assert receipt.get_deductible_amount(1_000_000) == Decimal("50000")

    def test_download_and_email(self):
        receipt = self._receipt(pdf_url=None)
        assert not receipt.can_be_downloaded
        receipt.mark_email_sent()
        assert receipt.email_sent and receipt.email_sent_at is not None


class TestUser:
    def test_names(self):
        user = User(telegram_id=42, first_name="Mina", last_name="Park", username="mina_eco")
        assert user.full_name == "Mina Park"
        assert user.display_name == "mina_eco"
        assert User(telegram_id=42).display_name == "User 42"

    def test_counters(self):
        user = User(telegram_id=42, total_impact=10, missions_completed=1, badges_earned=0)
        user.record_mission_completion(25)
        user.record_badge()

        assert (user.total_impact, user.missions_completed, user.badges_earned) == (35, 2, 1)

    def test_activity(self):
        user = User(telegram_id=42)
        assert not user.is_active_recently
        user.touch()
        assert user.is_active_recently
