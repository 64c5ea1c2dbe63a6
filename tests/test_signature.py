import hmac
import hashlib

from hookwise.verify_signature import sign_payload, verify_signature


def test_verify_signature_valid():
    secret = "mysecret"
    body = b'{"hello":"world"}'
    mac = hmac.new(secret.encode(), msg=body, digestmod=hashlib.sha256).hexdigest()
    header = f"sha256={mac}"

    assert verify_signature(secret, body, header) is True


def test_verify_signature_invalid():
    secret = "mysecret"
    body = b'{"hello":"world"}'
    header = "sha256=wronghash"

    assert verify_signature(secret, body, header) is False


def test_sign_payload_format():
    sig = sign_payload("mysecret", b"payload")
    assert sig.startswith("sha256=")
    assert len(sig) == len("sha256=") + 64


def test_sign_accepts_text_payload():
    assert sign_payload("s", '{"a":1}') == sign_payload("s", b'{"a":1}')


def test_round_trip_and_single_byte_mutations():
    secret = "k3y"
    body = b'{"event":"order.created","id":17}'
    header = sign_payload(secret, body)
    assert verify_signature(secret, body, header)

    for i in range(len(body)):
        mutated = bytearray(body)
        mutated[i] ^= 0x01
        assert not verify_signature(secret, bytes(mutated), header)

    for i in range(len(secret)):
        mutated_secret = secret[:i] + chr(ord(secret[i]) ^ 0x01) + secret[i + 1:]
        assert not verify_signature(mutated_secret, body, header)

    assert not verify_signature(secret + "x", body, header)


def test_empty_secret_fails_closed():
    body = b"{}"
    header = sign_payload("", body)
    assert verify_signature("", body, header) is False
    assert verify_signature(None, body, header) is False


def test_missing_signature_is_invalid():
    assert verify_signature("mysecret", b"{}", "") is False
    assert verify_signature("mysecret", b"{}", None) is False


def test_prefix_is_required():
    body = b"{}"
    bare = sign_payload("mysecret", body)[len("sha256="):]
    assert verify_signature("mysecret", body, bare) is False


def test_non_ascii_header_does_not_raise():
    assert verify_signature("mysecret", b"{}", "sha256=café") is False
