# tests/conftest.py
import hashlib

import pytest

from tapesig.crypto.keys import CryptoBackend
from tapesig.tape import BobTapeReader
from tapesig.verify.verifier import TapeVerifier

PARENT_ADDR = "1iCqLKPjv5HZ43MPkAC42vKPANLkGzbKF"
CHILD_ADDR = "1KNiYtyWqjmR8DoC8e7xeMi2F1CwHcrdsd"
PUBKEY_HEX = "03e4cc0c595cee4e117203fe9c5cc5f8fcfbfa00a06f8048347c6c08c78f073a49"

# sha256(00 6a 03 "foo" 03 "bar"), tape 1 serialized script-style
TAPE_HASH = "677ae98e74ebe6d68f93440bf2ebebdf35d7645a28c44220c88cab430b3b5734"
# sha256("foobar"), tape 1 with data cells only
PLAIN_TAPE_HASH = "c3ab8ff13720e8ad9047dd39466b3c8974e592c2fa383d4a3960714caef0c4f2"

BOB_TX = {
    "h": "test",
    "in": [],
    "out": [
        {},
        {
            "i": "0",
            "tape": [
                {
                    "i": 0,
                    "cell": [
                        {"i": 0, "ii": 0, "op": 0, "ops": "OP_FALSE"},
                        {"i": 1, "ii": 1, "op": 106, "ops": "OP_RETURN"},
                    ],
                },
                {
                    "i": 1,
                    "cell": [
                        {"i": 0, "ii": 2, "b": "Zm9v", "s": "foo"},
                        {"i": 1, "ii": 3, "b": "YmFy", "s": "bar"},
                    ],
                },
            ],
        },
    ],
}


class FakeCrypto(CryptoBackend):
    """
    Deterministic stand-in for real keys: a "signature" is a header byte followed by
    sha256(pubkey ++ message) twice, so only the exact (message, pubkey) pair verifies.
    """

    def __init__(self):
        self.calls = []

    @staticmethod
    def sign(message: bytes, pubkey: bytes) -> bytes:
        h = hashlib.sha256(pubkey + message).digest()
        return b"\x1f" + h + h

    @staticmethod
    def sign_der(digest: bytes, pubkey: bytes, hash_before_verify: bool = True) -> bytes:
        if hash_before_verify:
            digest = hashlib.sha256(digest).digest()
        h = hashlib.sha256(pubkey + digest).digest()
        return b"\x30" + h + h + b"\x01" * 6   # 71 bytes, like a DER signature

    def message_verify(self, signature, message, pubkey):
        self.calls.append(("message", signature, message, pubkey))
        return signature == self.sign(message, pubkey)

    def ecdsa_der_verify(self, signature, digest, pubkey, hash_before_verify):
        self.calls.append(("ecdsa", signature, digest, pubkey, hash_before_verify))
        return signature == self.sign_der(digest, pubkey, hash_before_verify)


@pytest.fixture
def bob_tx():
    return BOB_TX


@pytest.fixture
def tape_reader():
    return BobTapeReader(BOB_TX)


@pytest.fixture
def fake_crypto():
    return FakeCrypto()


@pytest.fixture
def verifier(tape_reader, fake_crypto):
    return TapeVerifier(tape_reader=tape_reader, crypto=fake_crypto)
