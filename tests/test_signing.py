"""
test_signing.py — Sign/verify protocol tests

Covers the published federation test vectors (seed
YJDBA9Xnr2sVqXD9Vj7XVUnmFZcZrlw8Md7kMW+3XA1, entity "domain", key
"ed25519:1"), round trips, the ``unsigned`` exclusion, tamper detection and
every rejection path of the verifier.
"""

import json
import unittest

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from fedsign import (
    FedSignError,
    InvalidSignatureError,
    KeyMaterialError,
    MalformedSignatureError,
    MissingSignatureError,
    ParseError,
    canonical_json,
    decode_base64,
    json_equal,
    sign_document,
    sign_json,
    verify_document,
    verify_json,
)
from fedsign.crypto import public_key_bytes

VECTOR_SEED = decode_base64("YJDBA9Xnr2sVqXD9Vj7XVUnmFZcZrlw8Md7kMW+3XA1", canonical=False)
VECTOR_ENTITY = "domain"
VECTOR_KEY_ID = "ed25519:1"
EMPTY_SIG = "K8280/U9SSy9IVtjBuVeLr+HpOB4BQFWbg+UZaADMtTdGYI7Geitb76LTrr5QV/7Xg4ahLwYGYZzuHGZKM5ZAQ"
ONE_TWO_SIG = "KqmLSbO39/Bzb0QIYE82zqLwsA+PDzYIpIRA2sRQ4sL53+sN6/fpNSoqE7BP7vBZhG6kYdD13EIMJpvhJI+6Bw"

OTHER_SEED = b"Some 32 randomly generated bytes"


def _public_key(seed: bytes) -> bytes:
    return public_key_bytes(Ed25519PrivateKey.from_private_bytes(seed).public_key())


VECTOR_PUBLIC = _public_key(VECTOR_SEED)


class TestSignVectors(unittest.TestCase):

    def test_sign_empty_object(self):
        signed = sign_json(VECTOR_ENTITY, VECTOR_KEY_ID, VECTOR_SEED, b"{}")
        expected = '{"signatures":{"domain":{"ed25519:1":"%s"}}}' % EMPTY_SIG
        self.assertEqual(signed, expected.encode("utf-8"))

    def test_sign_object_with_members(self):
        signed = sign_json(VECTOR_ENTITY, VECTOR_KEY_ID, VECTOR_SEED, b'{"one":1,"two":"Two"}')
        expected = (
            '{"one":1,"signatures":{"domain":{"ed25519:1":"%s"}},"two":"Two"}' % ONE_TWO_SIG
        )
        self.assertEqual(signed, expected.encode("utf-8"))

    def test_sign_ignores_input_formatting(self):
        signed = sign_json(
            VECTOR_ENTITY, VECTOR_KEY_ID, VECTOR_SEED, b'{\n  "two": "Two",\n  "one": 1\n}'
        )
        self.assertIn(ONE_TWO_SIG.encode("ascii"), signed)

    def test_sign_accepts_64_byte_private_key(self):
        signed = sign_json(VECTOR_ENTITY, VECTOR_KEY_ID, VECTOR_SEED + VECTOR_PUBLIC, b"{}")
        self.assertIn(EMPTY_SIG.encode("ascii"), signed)

    def test_sign_accepts_key_object(self):
        key = Ed25519PrivateKey.from_private_bytes(VECTOR_SEED)
        signed = sign_json(VECTOR_ENTITY, VECTOR_KEY_ID, key, b"{}")
        self.assertIn(EMPTY_SIG.encode("ascii"), signed)


class TestVerifyVectors(unittest.TestCase):

    def _verify(self, document: str) -> None:
        verify_json(VECTOR_ENTITY, VECTOR_KEY_ID, VECTOR_PUBLIC, document.encode("utf-8"))

    def test_valid_vector_verifies(self):
        self._verify("""{
            "signatures": {
                "domain": {
                    "ed25519:1": "%s"
                }
            }
        }""" % EMPTY_SIG)

    def test_modified_document_fails(self):
        doc = {"a new key": "a new value", "signatures": {"domain": {"ed25519:1": EMPTY_SIG}}}
        with self.assertRaises(InvalidSignatureError):
            self._verify(json.dumps(doc))

    def test_modified_signature_fails(self):
        doc = {"signatures": {"domain": {"ed25519:1": "modified" + EMPTY_SIG[8:]}}}
        with self.assertRaises(InvalidSignatureError):
            self._verify(json.dumps(doc))

    def test_missing_signatures(self):
        cases = [
            "{}",
            '{"signatures": {}}',
            '{"signatures": {"domain": {}}}',
            '{"signatures": null}',
            '{"signatures": {"domain": null}}',
            '{"signatures": {"other.example": {"ed25519:1": "%s"}}}' % EMPTY_SIG,
            '{"signatures": {"domain": {"ed25519:2": "%s"}}}' % ONE_TWO_SIG,
        ]
        for document in cases:
            with self.subTest(document=document):
                with self.assertRaises(MissingSignatureError):
                    self._verify(document)

    def test_signature_too_short(self):
        with self.assertRaises(MalformedSignatureError):
            self._verify('{"signatures": {"domain": {"ed25519:1": "not/a/valid/signature"}}}')

    def test_padded_signature_rejected(self):
        with self.assertRaises(MalformedSignatureError):
            self._verify('{"signatures": {"domain": {"ed25519:1": "%s=="}}}' % EMPTY_SIG)

    def test_signature_of_wrong_length_rejected(self):
        short = EMPTY_SIG[:-4]
        with self.assertRaises(MalformedSignatureError):
            self._verify('{"signatures": {"domain": {"ed25519:1": "%s"}}}' % short)

    def test_non_string_signature_rejected(self):
        with self.assertRaises(MalformedSignatureError):
            self._verify('{"signatures": {"domain": {"ed25519:1": 42}}}')

    def test_non_object_signatures_rejected(self):
        with self.assertRaises(MalformedSignatureError):
            self._verify('{"signatures": ["domain"]}')

    def test_every_single_character_flip_fails(self):
        replacements = "AB"
        for index in range(len(EMPTY_SIG)):
            flipped_char = replacements[0] if EMPTY_SIG[index] != replacements[0] else replacements[1]
            flipped = EMPTY_SIG[:index] + flipped_char + EMPTY_SIG[index + 1:]
            doc = {"signatures": {"domain": {"ed25519:1": flipped}}}
            with self.subTest(index=index):
                with self.assertRaises((InvalidSignatureError, MalformedSignatureError)):
                    self._verify(json.dumps(doc))

    def test_wrong_public_key_fails(self):
        doc = '{"signatures": {"domain": {"ed25519:1": "%s"}}}' % EMPTY_SIG
        with self.assertRaises(InvalidSignatureError):
            verify_json(VECTOR_ENTITY, VECTOR_KEY_ID, _public_key(OTHER_SEED), doc.encode())


class TestRoundTrip(unittest.TestCase):

    def setUp(self):
        self.entity = "example.com"
        self.key_id = "ed25519:my_key_id"
        self.public = _public_key(OTHER_SEED)

    def _sign(self, data: bytes) -> bytes:
        return sign_json(self.entity, self.key_id, OTHER_SEED, data)

    def _verify(self, data: bytes) -> None:
        verify_json(self.entity, self.key_id, self.public, data)

    def test_sign_then_verify(self):
        self._verify(self._sign(b'{"this":"is","my":"message"}'))

    def test_unsigned_can_change_after_signing(self):
        signed = self._sign(b'{"content":{"signed":"data"},"unsigned":{"unsigned":"data"}}')
        message = json.loads(signed)
        self.assertEqual(message["unsigned"], {"unsigned": "data"})

        message["unsigned"] = {"different": "data"}
        self._verify(json.dumps(message).encode("utf-8"))

        del message["unsigned"]
        self._verify(json.dumps(message).encode("utf-8"))

    def test_added_member_breaks_signature(self):
        message = json.loads(self._sign(b'{"content":{"signed":"data"}}'))
        message["extra"] = True
        with self.assertRaises(InvalidSignatureError):
            self._verify(json.dumps(message).encode("utf-8"))

    def test_modified_member_breaks_signature(self):
        message = json.loads(self._sign(b'{"content":{"signed":"data"},"n":[1,2,3]}'))
        message["n"] = [1, 2, 4]
        with self.assertRaises(InvalidSignatureError):
            self._verify(json.dumps(message).encode("utf-8"))

    def test_reordered_output_still_verifies(self):
        message = json.loads(self._sign(b'{"a":1,"b":{"c":[true,null]}}'))
        reordered = dict(reversed(list(message.items())))
        self._verify(json.dumps(reordered, indent=2).encode("utf-8"))

    def test_cosigning_keeps_other_signatures(self):
        signed = self._sign(b'{"event":"join"}')
        cosigned = sign_json(VECTOR_ENTITY, VECTOR_KEY_ID, VECTOR_SEED, signed)

        self._verify(cosigned)
        verify_json(VECTOR_ENTITY, VECTOR_KEY_ID, VECTOR_PUBLIC, cosigned)
        self.assertEqual(
            set(json.loads(cosigned)["signatures"]), {self.entity, VECTOR_ENTITY}
        )

    def test_resigning_replaces_only_same_key(self):
        signed = self._sign(b'{"event":"join"}')
        rotated = sign_json(self.entity, "ed25519:new", VECTOR_SEED, signed)
        sigs = json.loads(rotated)["signatures"][self.entity]
        self.assertEqual(set(sigs), {self.key_id, "ed25519:new"})

        again = self._sign(rotated)
        self.assertTrue(json_equal(again, rotated))

    def test_sign_output_is_canonical(self):
        signed = self._sign(b'{ "z": 1, "a": 2 }')
        self.assertEqual(canonical_json(signed), signed)


class TestDocumentApi(unittest.TestCase):

    def test_sign_document_returns_new_dict(self):
        original = {"content": {"x": 1}, "unsigned": {"age": 10}}
        signed = sign_document(VECTOR_ENTITY, VECTOR_KEY_ID, VECTOR_SEED, original)

        self.assertNotIn("signatures", original)
        self.assertEqual(signed["unsigned"], {"age": 10})
        self.assertEqual(signed["content"], {"x": 1})
        verify_document(VECTOR_ENTITY, VECTOR_KEY_ID, VECTOR_PUBLIC, signed)

    def test_document_vector_matches_bytes_vector(self):
        signed = sign_document(VECTOR_ENTITY, VECTOR_KEY_ID, VECTOR_SEED, {"one": 1, "two": "Two"})
        self.assertEqual(signed["signatures"][VECTOR_ENTITY][VECTOR_KEY_ID], ONE_TWO_SIG)

    def test_verify_document_rejects_tamper(self):
        signed = sign_document(VECTOR_ENTITY, VECTOR_KEY_ID, VECTOR_SEED, {"x": 1})
        signed["x"] = 2
        with self.assertRaises(InvalidSignatureError):
            verify_document(VECTOR_ENTITY, VECTOR_KEY_ID, VECTOR_PUBLIC, signed)

    def test_non_mapping_rejected(self):
        with self.assertRaises(ParseError):
            sign_document(VECTOR_ENTITY, VECTOR_KEY_ID, VECTOR_SEED, ["not", "a", "dict"])


class TestRejections(unittest.TestCase):

    def test_top_level_must_be_object(self):
        for data in (b"[]", b'"text"', b"1", b"null"):
            with self.subTest(data=data):
                with self.assertRaises(ParseError):
                    sign_json(VECTOR_ENTITY, VECTOR_KEY_ID, VECTOR_SEED, data)
                with self.assertRaises(ParseError):
                    verify_json(VECTOR_ENTITY, VECTOR_KEY_ID, VECTOR_PUBLIC, data)

    def test_invalid_json_rejected(self):
        with self.assertRaises(ParseError):
            sign_json(VECTOR_ENTITY, VECTOR_KEY_ID, VECTOR_SEED, b'{"a":')

    def test_malformed_key_ids(self):
        for key_id in ("ed25519", "ed25519:", ":1", "rsa:1"):
            with self.subTest(key_id=key_id):
                with self.assertRaises(KeyMaterialError):
                    sign_json(VECTOR_ENTITY, key_id, VECTOR_SEED, b"{}")
                with self.assertRaises(KeyMaterialError):
                    verify_json(VECTOR_ENTITY, key_id, VECTOR_PUBLIC, b"{}")

    def test_bad_private_key_lengths(self):
        for key in (b"", b"\x00" * 31, b"\x00" * 33, "not bytes"):
            with self.subTest(key=key):
                with self.assertRaises(KeyMaterialError):
                    sign_json(VECTOR_ENTITY, VECTOR_KEY_ID, key, b"{}")

    def test_mismatched_64_byte_key(self):
        with self.assertRaises(KeyMaterialError):
            sign_json(VECTOR_ENTITY, VECTOR_KEY_ID, VECTOR_SEED + b"\x00" * 32, b"{}")

    def test_bad_public_key(self):
        with self.assertRaises(KeyMaterialError):
            verify_json(VECTOR_ENTITY, VECTOR_KEY_ID, b"\x00" * 31, b"{}")

    def test_null_signatures_treated_as_absent(self):
        expected = ('{"signatures":{"domain":{"ed25519:1":"%s"}}}' % EMPTY_SIG).encode("ascii")
        for document in (b'{"signatures":null}', b'{"signatures":{"domain":null}}'):
            with self.subTest(document=document):
                signed = sign_json(VECTOR_ENTITY, VECTOR_KEY_ID, VECTOR_SEED, document)
                self.assertEqual(signed, expected)
                verify_json(VECTOR_ENTITY, VECTOR_KEY_ID, VECTOR_PUBLIC, signed)

    def test_null_entity_kept_out_of_other_signatures(self):
        document = ('{"signatures":{"other.example":null,"domain":{"ed25519:1":"%s"}}}' % EMPTY_SIG)
        signed = json.loads(sign_json("other.example", "ed25519:k", OTHER_SEED, document.encode("ascii")))
        self.assertEqual(set(signed["signatures"]), {"domain", "other.example"})
        self.assertEqual(list(signed["signatures"]["other.example"]), ["ed25519:k"])

    def test_malformed_existing_block_blocks_signing(self):
        with self.assertRaises(MalformedSignatureError):
            sign_json(VECTOR_ENTITY, VECTOR_KEY_ID, VECTOR_SEED, b'{"signatures":"nope"}')

    def test_all_rejections_share_base_class(self):
        with self.assertRaises(FedSignError):
            verify_json(VECTOR_ENTITY, VECTOR_KEY_ID, VECTOR_PUBLIC, b"{}")


if __name__ == "__main__":
    unittest.main()
