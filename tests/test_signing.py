from settlement.core.signing import (
    paystack_signature,
    sign_supplier_request,
    supplier_message,
    verify_paystack_signature,
    verify_supplier_signature,
)


class TestSupplierSignature:
    def test_canonical_message_layout(self):
        assert supplier_message("1700000000", "post", "/api/v1/orders", "{}") == "1700000000\nPOST\n/api/v1/orders\n{}"

    def test_signature_round_trips(self):
        timestamp, signature = sign_supplier_request("secret", "POST", "/api/v1/orders", '{"a":1}', "1700000000")

        assert timestamp == "1700000000"
        assert verify_supplier_signature("secret", "POST", "/api/v1/orders", '{"a":1}', timestamp, signature)

    def test_any_change_breaks_the_signature(self):
        timestamp, signature = sign_supplier_request("secret", "POST", "/api/v1/orders", '{"a":1}', "1700000000")

        assert not verify_supplier_signature("secret", "POST", "/api/v1/orders", '{"a":2}', timestamp, signature)
        assert not verify_supplier_signature("secret", "GET", "/api/v1/orders", '{"a":1}', timestamp, signature)
        assert not verify_supplier_signature("other", "POST", "/api/v1/orders", '{"a":1}', timestamp, signature)
        assert not verify_supplier_signature("secret", "POST", "/api/v1/orders", '{"a":1}', "1700000001", signature)

    def test_missing_parts_never_verify(self):
        assert not verify_supplier_signature("", "POST", "/", "", "1", "abc")
        assert not verify_supplier_signature("secret", "POST", "/", "", "", "abc")


class TestPaystackSignature:
    def test_sha512_hex_digest(self):
        signature = paystack_signature("sk_test", b"{}")

        assert len(signature) == 128
        assert verify_paystack_signature("sk_test", b"{}", signature)

    def test_rejects_tampered_or_missing_signature(self):
        signature = paystack_signature("sk_test", b"{}")

        assert not verify_paystack_signature("sk_test", b"{ }", signature)
        assert not verify_paystack_signature("sk_test", b"{}", None)
        assert not verify_paystack_signature("", b"{}", signature)
