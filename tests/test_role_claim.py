from clinic_app.role_claim import issue_role_claim, sign_payload, verify_role_claim

SECRET = "unit-test-secret"
NOW = 1_700_000_000


def test_round_trip():
    value = issue_role_claim("admin", ttl_seconds=30, secret=SECRET, now=NOW)
    claim = verify_role_claim(value, secret=SECRET, now=NOW + 5)
    assert claim.valid is True
    assert claim.role == "admin"
    assert claim.expires == NOW + 30


def test_wire_format():
    value = issue_role_claim("patient", ttl_seconds=30, secret=SECRET, now=NOW)
    payload, signature = value.rsplit(".", 1)
    assert payload == f"patient|{NOW + 30}"
    assert signature == sign_payload(payload, SECRET)
    assert "=" not in signature


def test_expired_claim_is_invalid():
    value = issue_role_claim("admin", ttl_seconds=30, secret=SECRET, now=NOW)
    assert verify_role_claim(value, secret=SECRET, now=NOW + 30).valid is False
    assert verify_role_claim(value, secret=SECRET, now=NOW + 3600).valid is False


def test_tampered_role_is_invalid():
    value = issue_role_claim("patient", ttl_seconds=30, secret=SECRET, now=NOW)
    forged = value.replace("patient", "admin", 1)
    assert verify_role_claim(forged, secret=SECRET, now=NOW).valid is False


def test_tampered_signature_is_invalid():
    value = issue_role_claim("admin", ttl_seconds=30, secret=SECRET, now=NOW)
    flipped = value[:-1] + ("A" if value[-1] != "A" else "B")
    assert verify_role_claim(flipped, secret=SECRET, now=NOW).valid is False


def test_wrong_secret_is_invalid():
    value = issue_role_claim("admin", ttl_seconds=30, secret=SECRET, now=NOW)
    assert verify_role_claim(value, secret="other-secret", now=NOW).valid is False


def test_malformed_values_are_invalid_not_errors():
    for value in [None, "", "admin", "admin|notanumber.sig", "|.", "admin|.x", "ünïcode|1.é"]:
        assert verify_role_claim(value, secret=SECRET, now=NOW).valid is False


def test_empty_role_verifies_without_role():
    value = issue_role_claim("", ttl_seconds=30, secret=SECRET, now=NOW)
    claim = verify_role_claim(value, secret=SECRET, now=NOW)
    assert claim.valid is True
    assert claim.role is None


def test_unsigned_mode_without_secret():
    value = issue_role_claim("admin", ttl_seconds=30, secret="", now=NOW)
    assert value.endswith(".")
    assert verify_role_claim(value, secret="", now=NOW).role == "admin"
    # A signed claim is not accepted in unsigned mode
    signed = issue_role_claim("admin", ttl_seconds=30, secret=SECRET, now=NOW)
    assert verify_role_claim(signed, secret="", now=NOW).valid is False


def test_unsigned_claim_rejected_when_secret_configured():
    unsigned = issue_role_claim("admin", ttl_seconds=30, secret="", now=NOW)
    assert verify_role_claim(unsigned, secret=SECRET, now=NOW).valid is False
