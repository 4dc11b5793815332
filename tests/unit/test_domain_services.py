import pytest

from identity.domain.errors import ValidationError
from identity.domain.services import (
    LINK_TICKET_SIZE,
    URL_SAFE_ALPHABET,
    check_password_policy,
    generate_opaque_token,
    generate_sms_code,
    generate_ticket,
    is_valid_pkce_value,
    s256_code_challenge,
    secure_compare,
    verify_code_challenge,
)
from tests.conftest import PKCE_CHALLENGE, PKCE_VERIFIER


def test_link_ticket_is_url_safe_and_21_chars():
    seen = set()
    for _ in range(100):
        t = generate_ticket()
        assert len(t) == LINK_TICKET_SIZE
        assert set(t) <= set(URL_SAFE_ALPHABET), t
        seen.add(t)
    assert len(seen) == 100


def test_sms_code_is_6_digits():
    for _ in range(100):
        c = generate_sms_code()
        assert len(c) == 6 and c.isdigit(), c


def test_generate_ticket_rejects_non_positive_size():
    with pytest.raises(ValueError):
        generate_ticket(0)


def test_opaque_tokens_are_unique_and_long():
    tokens = {generate_opaque_token() for _ in range(50)}
    assert len(tokens) == 50
    assert all(len(t) >= 50 for t in tokens)


def test_secure_compare_behavior():
    assert secure_compare("abcd", "abcd") is True
    assert secure_compare("abcd", "abce") is False
    assert secure_compare("", "") is True
    assert secure_compare("a", "") is False
    # non-ascii strings go through the bytes path
    assert secure_compare("héllo", "héllo") is True


def test_password_policy_min_length():
    check_password_policy("x" * 10, 10)
    with pytest.raises(ValidationError, match="10 characters or longer"):
        check_password_policy("x" * 9, 10)
    with pytest.raises(ValidationError):
        check_password_policy(None, 10)


def test_s256_matches_rfc7636_vector():
    assert s256_code_challenge(PKCE_VERIFIER) == PKCE_CHALLENGE


def test_verify_code_challenge_methods():
    assert verify_code_challenge(PKCE_VERIFIER, PKCE_CHALLENGE, "S256")
    assert not verify_code_challenge("x" * 43, PKCE_CHALLENGE, "S256")
    assert verify_code_challenge(PKCE_VERIFIER, PKCE_VERIFIER, "plain")
    assert not verify_code_challenge(PKCE_VERIFIER, PKCE_VERIFIER, "S512")


@pytest.mark.parametrize(
    "value, ok",
    [
        (PKCE_VERIFIER, True),
        ("a" * 43, True),
        ("a" * 128, True),
        ("a" * 42, False),
        ("a" * 129, False),
        ("a" * 42 + "+", False),
        ("a" * 43 + "\n", False),
        (" " + "a" * 43, False),
        ("", False),
        (None, False),
    ],
)
def test_pkce_value_format(value, ok):
    assert is_valid_pkce_value(value) is ok
