import pytest

from domain.checkout.operators import OPERATORS, get_operator, normalize_phone_number, phone_number_error
from domain.common.exceptions import CheckoutValidationException


def test_known_operators():
    assert [op.id for op in OPERATORS] == ["orange", "mtn", "moov", "wave"]
    assert get_operator("ORANGE").prefixes == ("07", "08", "09")


def test_unknown_operator_raises():
    with pytest.raises(CheckoutValidationException) as exc:
        get_operator("airtel")
    assert exc.value.field == "operator"
    assert "orange" in exc.value.details["allowed"]


def test_normalize_strips_separators():
    assert normalize_phone_number("07 12-34.56 78") == "0712345678"
    assert normalize_phone_number(None) == ""


@pytest.mark.parametrize(
    "operator_id, number",
    [
        ("orange", "0712345678"),
        ("orange", "09 12 34 56 78"),
        ("mtn", "0512345678"),
        ("moov", "0112345678"),
        ("wave", "0512345678"),
        ("wave", "0412345678"),
    ],
)
def test_valid_numbers(operator_id, number):
    assert phone_number_error(get_operator(operator_id), number) is None


def test_wrong_prefix_is_rejected():
    reason = phone_number_error(get_operator("mtn"), "0712345678")
    assert reason is not None
    assert "05, 06" in reason


def test_length_rules():
    orange = get_operator("orange")
    assert "at least 10" in phone_number_error(orange, "071234567")
    assert "cannot exceed 10" in phone_number_error(orange, "07123456789")
    assert phone_number_error(orange, "") == "Please enter a valid number"


def test_missing_operator():
    assert phone_number_error(None, "0712345678") == "Please select an operator first"
