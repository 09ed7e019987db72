# pylint: disable=missing-module-docstring,redefined-outer-name
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import base64
import binascii
import secrets

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa as crypto_rsa
import pytest

import rsamessenger
from rsamessenger import codec
from rsamessenger import errors
from rsamessenger import rsa

pytestmark = pytest.mark.filterwarnings("ignore:Textbook RSA encryption is unsecure")


@pytest.fixture(scope="module")
def crypto_key() -> crypto_rsa.RSAPrivateKey:
    return crypto_rsa.generate_private_key(public_exponent=65537, key_size=2048)


def test_c_rsa_textbook(tiny_pair):
    assert tiny_pair.public.c_rsa(65) == 2790
    assert tiny_pair.private.c_rsa(2790) == 65


@pytest.mark.parametrize("message", [3233, 3234, 2**20])
def test_c_rsa_overflow(tiny_pair, message):
    with pytest.raises(errors.MessageTooLongError):
        tiny_pair.public.c_rsa(message)
    with pytest.raises(errors.MessageTooLongError):
        tiny_pair.private.c_rsa(message)


def test_c_rsa_underflow(tiny_pair):
    with pytest.raises(ValueError):
        tiny_pair.public.c_rsa(-1)


def test_encrypt_known_answer(tiny_pair):
    with pytest.warns(RuntimeWarning, match="Textbook RSA encryption is unsecure! Please use with care."):
        ciphertext = tiny_pair.public.encrypt(b"A")
    assert ciphertext == base64.b64encode(b"\xe6\x0a").decode("ascii")
    assert tiny_pair.private.decrypt(ciphertext) == b"A"


def test_encrypt_modulus_boundary(tiny_pair):
    below = (3232).to_bytes(2, "little")
    ciphertext = tiny_pair.public.encrypt(below)
    assert tiny_pair.private.decrypt(ciphertext) == below


@pytest.mark.parametrize("message", [(3233).to_bytes(2, "little"), b"\xff\xff", b"hi there"])
def test_encrypt_rejects_long_messages(tiny_pair, message):
    with pytest.raises(errors.MessageTooLongError):
        tiny_pair.public.encrypt(message)


def test_decrypt_rejects_out_of_range_ciphertext(tiny_pair):
    with pytest.raises(errors.MessageTooLongError):
        tiny_pair.private.decrypt(codec.b64_enc(3233))


def test_decrypt_rejects_non_base64(tiny_pair):
    with pytest.raises(errors.MalformedCiphertextError, match="base64") as exc_info:
        tiny_pair.private.decrypt("woah woah woah")
    assert isinstance(exc_info.value.__cause__, binascii.Error)
    assert isinstance(exc_info.value, ValueError)


def test_decrypt_rejects_non_ascii(tiny_pair):
    with pytest.raises(errors.MalformedCiphertextError):
        tiny_pair.private.decrypt("šifra")


@pytest.mark.parametrize("message", [b"", b"\x00", b"hi", b"\x00hi", b"\x01" * 18, "Žluťoučký".encode("utf-8")])
def test_encrypt_decrypt(mersenne_pair, message):
    ciphertext = mersenne_pair.public.encrypt(message)
    assert mersenne_pair.private.decrypt(ciphertext, len(message)) == message


def test_decrypt_preserves_low_order_zero(mersenne_pair):
    ciphertext = mersenne_pair.public.encrypt(b"\x00hi")
    assert mersenne_pair.private.decrypt(ciphertext) == b"\x00hi"


def test_decrypt_drops_high_order_zero(mersenne_pair):
    # Little-endian marshalling: trailing zero bytes are the high-order ones and vanish in the integer.
    ciphertext = mersenne_pair.public.encrypt(b"hi\x00\x00")
    assert mersenne_pair.private.decrypt(ciphertext) == b"hi"
    assert mersenne_pair.private.decrypt(ciphertext, 4) == b"hi\x00\x00"


def test_decrypt_length_too_short(mersenne_pair):
    ciphertext = mersenne_pair.public.encrypt(b"hello")
    with pytest.raises(ValueError, match="does not fit"):
        mersenne_pair.private.decrypt(ciphertext, 2)


def test_round_trip_property(mersenne_pair):
    n = mersenne_pair.public.mod
    for m in [0, 1, n - 1] + [secrets.randbelow(n) for _ in range(20)]:
        ciphertext = rsamessenger.encrypt(codec.minimal_bytes(m), mersenne_pair.public.to_text())
        clear = rsamessenger.decrypt(ciphertext, mersenne_pair.private.to_text())
        assert codec.bytes_to_integer(clear) == m


def test_end_to_end_hi():
    private_text, public_text = rsamessenger.generate_key_pair(64)
    pair = rsa.KeyPair.from_text(private_text, public_text)
    assert pair.to_text() == (private_text, public_text)
    assert pair.private.mod == pair.public.mod
    ciphertext = rsamessenger.encrypt(b"hi", public_text)
    assert rsamessenger.decrypt(ciphertext, private_text) == b"hi"


@pytest.mark.parametrize("bits", [64, 256, pytest.param(1024, marks=pytest.mark.slow)])
def test_key_pair_generate(bits):
    pair = rsa.KeyPair.generate(bits)
    assert isinstance(pair.private, rsa.RSAPrivKey)
    assert isinstance(pair.public, rsa.RSAPubKey)
    clear = b"hi"
    assert pair.private.decrypt(pair.public.encrypt(clear)) == clear


def test_key_text_round(tiny_pair):
    assert rsa.RSAPubKey.from_text(tiny_pair.public.to_text()) == tiny_pair.public
    assert rsa.RSAPrivKey.from_text(tiny_pair.private.to_text()) == tiny_pair.private
    assert tiny_pair.public.to_text() == codec.encode_key(17, 3233)


def test_key_equality(tiny_pair):
    assert tiny_pair.public != rsa.RSAPrivKey(3233, 17)
    assert tiny_pair.public != (3233, 17)
    assert len({tiny_pair.public, rsa.RSAPubKey(3233, 17)}) == 1
    assert "12 bits" in repr(tiny_pair.public)


@pytest.mark.parametrize("value,modulus", [(0, 3233), (17, 0)])
def test_from_text_rejects_zero(value, modulus):
    with pytest.raises(errors.MalformedKeyError):
        rsa.RSAPubKey.from_text(codec.encode_key(value, modulus))


def test_key_pair_from_text_mismatch(tiny_pair, mersenne_pair):
    with pytest.raises(errors.MalformedKeyError, match="modulus"):
        rsa.KeyPair.from_text(tiny_pair.private.to_text(), mersenne_pair.public.to_text())


@pytest.mark.parametrize("text", ["", "garbage!", codec.encode_key(17, 3233)[:-4]])
def test_encrypt_malformed_key(text):
    with pytest.raises(errors.MalformedKeyError):
        rsamessenger.encrypt(b"hi", text)
    with pytest.raises(errors.MalformedKeyError):
        rsamessenger.decrypt("AA==", text)


def test_public_export(crypto_key, tmp_path):
    pubs = crypto_key.public_key().public_numbers()
    key = rsa.RSAPubKey(pubs.n, pubs.e)
    des = tmp_path / "testkey.pub"
    key.export(des)
    with open(des, "rb") as fi:
        interkey = serialization.load_pem_public_key(fi.read())
    assert interkey.public_numbers() == pubs


def test_public_import(crypto_key, tmp_path):
    pubs = crypto_key.public_key().public_numbers()
    des = tmp_path / "testkey.pub"
    des.write_bytes(crypto_key.public_key().public_bytes(serialization.Encoding.PEM, serialization.PublicFormat.PKCS1))
    pubkey = rsa.RSAPubKey.import_key(des)
    assert pubkey.mod == pubs.n
    assert pubkey.expo == pubs.e


def test_public_export_import_round(mersenne_pair, tmp_path):
    des = tmp_path / "mersenne.pub"
    mersenne_pair.public.export(des)
    assert rsa.RSAPubKey.import_key(des) == mersenne_pair.public




def test_to_pem_layout(crypto_key):
    pubs = crypto_key.public_key().public_numbers()
    lines = rsa.RSAPubKey(pubs.n, pubs.e).to_pem().splitlines()
    assert lines[0] == rsa.PEM_HEADER
    assert lines[-1] == rsa.PEM_FOOTER
    assert all(len(line) <= rsa.PEM_WIDTH for line in lines[1:-1])
    assert len(lines[1]) == rsa.PEM_WIDTH


def test_from_pem_round(tiny_pair):
    assert rsa.RSAPubKey.from_pem(tiny_pair.public.to_pem()) == tiny_pair.public


@pytest.mark.parametrize("text", [
    "",
    "-----BEGIN GARBAGE DATA-----\nMAYCAQUCAQM=\n-----END RSA PUBLIC KEY-----\n",
    "-----BEGIN RSA PUBLIC KEY-----\nMAYCAQUCAQM=\n\n\n",
    "-----BEGIN RSA PUBLIC KEY-----\nnot base64 at all!\n-----END RSA PUBLIC KEY-----\n",
    "-----BEGIN RSA PUBLIC KEY-----\nQUFBQQ==\n-----END RSA PUBLIC KEY-----\n",
    "-----BEGIN RSA PUBLIC KEY-----\n-----END RSA PUBLIC KEY-----\n",
])
def test_from_pem_malformed(text):
    with pytest.raises(errors.MalformedKeyError):
        rsa.RSAPubKey.from_pem(text)


@pytest.mark.parametrize("mod,expo", [(0, 17), (3233, 0), (-3233, 17), (3233, -17)])
def test_from_pem_rejects_non_positive(mod, expo):
    with pytest.raises(errors.MalformedKeyError, match="positive"):
        rsa.RSAPubKey.from_pem(rsa.RSAPubKey(mod, expo).to_pem())


def test_from_pem_rejects_trailing_data(tiny_pair):
    lines = tiny_pair.public.to_pem().splitlines()
    body = base64.b64encode(base64.b64decode(lines[1]) + b"\x00\x00").decode("ascii")
    with pytest.raises(errors.MalformedKeyError, match="trailing"):
        rsa.RSAPubKey.from_pem("\n".join([lines[0], body, lines[-1]]))


def test_import_key_malformed_file(tmp_path):
    des = tmp_path / "broken.pub"
    des.write_text("-----BEGIN RSA PUBLIC KEY-----\nAAAA\n", encoding="ascii")
    with pytest.raises(errors.MalformedKeyError):
        rsa.RSAPubKey.import_key(des)
