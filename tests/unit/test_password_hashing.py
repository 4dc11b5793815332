from identity.infrastructure.security.password import (
    dummy_verify,
    hash_password,
    verify_password,
)


def test_password_hash_and_verify():
    h = hash_password("s3cret-password", rounds=4)
    assert h.startswith("$2b$") or h.startswith("$2a$")
    assert verify_password("s3cret-password", h)
    assert not verify_password("wrong", h)


def test_hashes_are_salted():
    assert hash_password("same-password", rounds=4) != hash_password("same-password", rounds=4)


def test_malformed_hash_is_a_mismatch_not_an_error():
    assert verify_password("anything", "not-a-bcrypt-hash") is False
    assert verify_password("anything", "") is False


def test_dummy_verify_never_matches():
    assert dummy_verify("dummy-password-for-timing") is False
