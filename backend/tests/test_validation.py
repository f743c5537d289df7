import pytest

from syncclinic.validation import (
    MAX_AMOUNT_CENTS,
    ValidationError,
    coerce_amount_cents,
    parse_line_items,
    parse_payment_payload,
)


class TestCoerceAmount:
    @pytest.mark.parametrize("value,expected", [(0, 0), (150000, 150000), ("2500", 2500), (" 42 ", 42)])
    def test_accepts_integers(self, value, expected):
        assert coerce_amount_cents(value) == expected

    @pytest.mark.parametrize("value", [-1, "-5", 10.5, "10.50", "1e3", "", "abc", True, None, [100]])
    def test_rejects(self, value):
        with pytest.raises(ValidationError):
            coerce_amount_cents(value)

    def test_upper_bound(self):
        assert coerce_amount_cents(MAX_AMOUNT_CENTS) == MAX_AMOUNT_CENTS
        with pytest.raises(ValidationError):
            coerce_amount_cents(MAX_AMOUNT_CENTS + 1)

    def test_field_name_in_message(self):
        with pytest.raises(ValidationError, match="total_cents"):
            coerce_amount_cents(-1, field="total_cents")


class TestParseLineItems:
    def test_blank_rows_dropped(self):
        items = parse_line_items([
            {"description": "Consultation", "amount_cents": 150000},
            {"description": "   ", "amount_cents": 999},
            {"description": "Lab: Urinalysis", "source": "lab"},
        ])
        assert items == [
            {"description": "Consultation", "amount_cents": 150000},
            {"description": "Lab: Urinalysis", "amount_cents": 0, "source": "lab"},
        ]

    def test_requires_one_described_item(self):
        with pytest.raises(ValidationError, match="At least one line item"):
            parse_line_items([{"description": "", "amount_cents": 100}])

    @pytest.mark.parametrize("raw", [None, "Consultation", [["Consultation", 100]]])
    def test_shape_errors(self, raw):
        with pytest.raises(ValidationError):
            parse_line_items(raw)


class TestParsePaymentPayload:
    def test_create_requires_amount_and_mode(self):
        with pytest.raises(ValidationError, match="Amount and mode required"):
            parse_payment_payload({"amount_cents": 5000}, partial=False)
        with pytest.raises(ValidationError, match="Amount and mode required"):
            parse_payment_payload({"amount_cents": 0, "mode": "Cash"}, partial=False)

    def test_create_cleans_fields(self):
        payload = parse_payment_payload(
            {"amount_cents": "5000", "mode": " M-Pesa ", "reference": " QK12 ", "notes": None},
            partial=False,
        )
        assert payload == {"amount_cents": 5000, "mode": "M-Pesa", "reference": "QK12", "notes": ""}

    def test_unknown_and_read_only_fields(self):
        with pytest.raises(ValidationError, match="paid_at"):
            parse_payment_payload({"amount_cents": 100, "mode": "Cash", "paid_at": "x"}, partial=False)
        with pytest.raises(ValidationError, match="id"):
            parse_payment_payload({"id": "abc"}, partial=True)

    def test_patch_allows_zero_amount(self):
        assert parse_payment_payload({"amount_cents": 0}, partial=True) == {"amount_cents": 0}

    def test_patch_needs_a_field(self):
        with pytest.raises(ValidationError, match="No payment fields"):
            parse_payment_payload({}, partial=True)

    def test_patch_rejects_blank_mode(self):
        with pytest.raises(ValidationError):
            parse_payment_payload({"mode": "  "}, partial=True)

    def test_body_must_be_object(self):
        with pytest.raises(ValidationError):
            parse_payment_payload(None, partial=False)
