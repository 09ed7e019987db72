"""Textbook RSA for the messenger: prime generation, key text encoding, encryption and decryption.

Provides a from-scratch RSA cryptosystem with a compact, portable key text format. Keys are generated once and
persisted as key text; messages are encrypted with a public key text and decrypted with a private key text.

Typical usage example:

    private_text, public_text = generate_key_pair(1024)
    c = encrypt(b"Hi there!", public_text)
    r = decrypt(c, private_text)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
from rsamessenger.codec import decode_key
from rsamessenger.codec import encode_key
from rsamessenger.errors import EntropyExhaustedError
from rsamessenger.errors import GenerationCancelledError
from rsamessenger.errors import MalformedCiphertextError
from rsamessenger.errors import MalformedKeyError
from rsamessenger.errors import MessageTooLongError
from rsamessenger.errors import NotInvertibleError
from rsamessenger.errors import RSAError
from rsamessenger.keygen import derive_key_material
from rsamessenger.keygen import generate_key_pair
from rsamessenger.keygen import generate_primes
from rsamessenger.keygen import is_probably_prime
from rsamessenger.keygen import mod_inverse
from rsamessenger.rsa import decrypt
from rsamessenger.rsa import encrypt
from rsamessenger.rsa import KeyPair
from rsamessenger.rsa import RSAPrivKey
from rsamessenger.rsa import RSAPubKey

__version__ = "0.1.0"
__all__ = [
    "KeyPair",
    "RSAPrivKey",
    "RSAPubKey",
    "encode_key",
    "decode_key",
    "encrypt",
    "decrypt",
    "is_probably_prime",
    "generate_primes",
    "mod_inverse",
    "derive_key_material",
    "generate_key_pair",
    "RSAError",
    "MalformedKeyError",
    "MalformedCiphertextError",
    "MessageTooLongError",
    "NotInvertibleError",
    "EntropyExhaustedError",
    "GenerationCancelledError",
]
