import pytest

from application.dtos.checkout import ErrorView
from domain.checkout.errors import ERROR_CATALOG, ErrorKind, classify, classify_http_status, describe


@pytest.mark.parametrize(
    "raw, kind",
    [
        ("Insufficient balance on account", ErrorKind.INSUFFICIENT_FUNDS),
        ("Solde insuffisant", ErrorKind.INSUFFICIENT_FUNDS),
        ("Invalid phone number", ErrorKind.INVALID_NUMBER),
        ("Numéro incorrect", ErrorKind.INVALID_NUMBER),
        ("Transaction declined by operator", ErrorKind.TRANSACTION_DECLINED),
        ("Paiement refusé", ErrorKind.TRANSACTION_DECLINED),
        ("Network unreachable", ErrorKind.NETWORK_ERROR),
        ("Request timeout", ErrorKind.TIMEOUT),
        ("Délai dépassé", ErrorKind.TIMEOUT),
    ],
)
def test_classify_keywords(raw, kind):
    assert classify(raw) == kind


def test_classify_first_match_wins():
    # "invalid" comes before "timeout" in precedence
    assert classify("invalid request: timeout") == ErrorKind.INVALID_NUMBER
    assert classify("insufficient funds, transaction declined") == ErrorKind.INSUFFICIENT_FUNDS


@pytest.mark.parametrize("raw", [None, "", "something odd happened", "HTTP 500"])
def test_classify_defaults_to_network_error(raw):
    assert classify(raw) == ErrorKind.NETWORK_ERROR


def test_classify_is_case_insensitive():
    assert classify("INSUFFICIENT FUNDS") == ErrorKind.INSUFFICIENT_FUNDS


def test_http_status_takes_precedence():
    assert classify_http_status(402, "bad request") == ErrorKind.INSUFFICIENT_FUNDS
    assert classify_http_status(403, "invalid number") == ErrorKind.TRANSACTION_DECLINED
    assert classify_http_status(400, "invalid number") == ErrorKind.INVALID_NUMBER
    assert classify_http_status(None, "timeout") == ErrorKind.TIMEOUT


def test_catalog_covers_every_kind():
    for kind in ErrorKind:
        info = describe(kind)
        assert info.kind == kind
        assert info.title and info.message
        assert len(info.suggestions) >= 2
    assert set(ERROR_CATALOG) == set(ErrorKind)


def test_error_view_keeps_raw_error():
    view = ErrorView.for_kind(ErrorKind.INSUFFICIENT_FUNDS, "Solde insuffisant")
    assert view.title == "Insufficient balance"
    assert view.raw_error == "Solde insuffisant"
    assert view.suggestions[0] == "Top up your mobile money account"
