import hashlib
import hmac
import json

import pytest

from src.utils.crypto import generate_secret, serialize_payload, verify_signature
from src.webhook_delivery.signer import WebhookSigner, sign


class TestSign:
    """Tests for sign() / WebhookSigner.sign()."""

    @pytest.mark.unit
    def test_signature_matches_hmac_over_timestamp_and_body(self, webhook_secret):
        payload = {"order_id": "ord_1", "amount": "100.00"}
        signed = sign(webhook_secret, payload, timestamp=1700000000123)

        expected = hmac.new(
            webhook_secret.encode(),
            f"1700000000123.{json.dumps(payload, separators=(',', ':'))}".encode(),
            hashlib.sha256,
        ).hexdigest()
        assert signed.signature == expected
        assert signed.timestamp == 1700000000123

    @pytest.mark.unit
    def test_sign_is_deterministic_for_fixed_timestamp(self, signer):
        payload = {"order_id": "ord_1"}
        assert signer.sign(payload, timestamp=1).signature == signer.sign(payload, timestamp=1).signature

    @pytest.mark.unit
    def test_timestamp_is_part_of_signed_message(self, signer):
        payload = {"order_id": "ord_1"}
        assert signer.sign(payload, timestamp=1).signature != signer.sign(payload, timestamp=2).signature

    @pytest.mark.unit
    def test_timestamp_defaults_to_current_epoch_millis(self, signer):
        signed = signer.sign({})
        # 2020-09-13 in ms; a seconds-based timestamp would be far smaller
        assert signed.timestamp > 1_600_000_000_000

    @pytest.mark.unit
    def test_output_is_hex_sha256(self, signer):
        sig = signer.sign({"a": 1}).signature
        assert len(sig) == 64
        int(sig, 16)

    @pytest.mark.unit
    def test_body_is_compact_json_of_payload(self, signer):
        signed = signer.sign({"b": 1, "a": [1, 2]})
        assert signed.body == '{"b":1,"a":[1,2]}'
        assert signed.body == serialize_payload({"b": 1, "a": [1, 2]})

    @pytest.mark.unit
    def test_different_secrets_produce_different_signatures(self):
        payload = {"order_id": "ord_1"}
        assert (
            WebhookSigner("secret-a").sign(payload, timestamp=5).signature
            != WebhookSigner("secret-b").sign(payload, timestamp=5).signature
        )

    @pytest.mark.unit
    def test_unicode_payload_content_works(self, signer):
        signed = signer.sign({"seller": "Śrī Gaṇeśa Traders"})
        assert signer.verify(signed.timestamp, signed.body, signed.signature)

    @pytest.mark.unit
    def test_missing_secret_is_a_programming_error(self):
        with pytest.raises(ValueError):
            sign("", {"a": 1})

    @pytest.mark.unit
    def test_unserializable_payload_propagates(self, webhook_secret):
        class Opaque:
            def __repr__(self):
                raise RuntimeError("no")

        # default=str would call __str__ -> __repr__, which raises
        with pytest.raises(RuntimeError):
            sign(webhook_secret, {"value": Opaque()})


class TestVerify:

    @pytest.mark.unit
    def test_verify_accepts_valid_signature(self, signer):
        signed = signer.sign({"order_id": "ord_1"})
        assert signer.verify(signed.timestamp, signed.body, signed.signature) is True

    @pytest.mark.unit
    def test_verify_accepts_string_timestamp_from_header(self, webhook_secret, signer):
        signed = signer.sign({"order_id": "ord_1"})
        assert verify_signature(webhook_secret, str(signed.timestamp), signed.body, signed.signature)

    @pytest.mark.unit
    def test_verify_rejects_tampered_body(self, signer):
        signed = signer.sign({"amount": "100.00"})
        assert signer.verify(signed.timestamp, '{"amount":"999.99"}', signed.signature) is False

    @pytest.mark.unit
    def test_verify_rejects_replayed_signature_with_new_timestamp(self, signer):
        signed = signer.sign({"amount": "100.00"})
        assert signer.verify(signed.timestamp + 1, signed.body, signed.signature) is False


@pytest.mark.unit
def test_generate_secret_is_48_hex_chars():
    secret = generate_secret()
    assert len(secret) == 48
    int(secret, 16)
    assert secret != generate_secret()
