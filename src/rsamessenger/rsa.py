"""Provides core RSA functionalities: key objects, encryption and decryption.

Everything here is "textbook" RSA: the message bytes are read as one integer and raised to the key exponent, with no
padding scheme. Keys travel as key text (see `rsamessenger.codec`); public keys can additionally be exported to a
PKCS1 PEM file for use with other tools.

Typical usage example:

    pair = KeyPair.generate(1024)
    c = pair.public.encrypt(b"Hi there!")
    r = pair.private.decrypt(c)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import base64
import binascii
import pathlib
import textwrap
import threading
import typing
import warnings

from pyasn1 import error
from pyasn1.codec.der import decoder
from pyasn1.codec.der import encoder
from pyasn1_modules import rfc8017

from rsamessenger import codec
from rsamessenger import keygen
from rsamessenger.errors import MalformedCiphertextError
from rsamessenger.errors import MalformedKeyError
from rsamessenger.errors import MessageTooLongError

PEM_HEADER = "-----BEGIN RSA PUBLIC KEY-----"
PEM_FOOTER = "-----END RSA PUBLIC KEY-----"
PEM_WIDTH = 64

_KeyT = typing.TypeVar("_KeyT", bound="RSAKey")


class RSAKey:
    """An (exponent, modulus) pair, the common core of public and private keys.

    Attributes:
        mod: The modulus of the keypair.
        expo: The exponent of the key, whether private or public.
    """

    def __init__(self, mod: int, expo: int) -> None:
        self.mod = mod
        self.expo = expo

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RSAKey):
            return NotImplemented
        return type(self) is type(other) and (self.mod, self.expo) == (other.mod, other.expo)

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.mod, self.expo))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(mod=<{self.mod.bit_length()} bits>, expo=<{self.expo.bit_length()} bits>)"

    def c_rsa(self, message: int) -> int:
        """Performs core RSA operation. (Encrypt/Decrypt)

        Args:
            message: The int-marshalled message.

        Returns:
            message ** expo mod mod

        Raises:
            ValueError: If the message is negative.
            MessageTooLongError: If the message is not smaller than the modulus.
        """
        if message < 0:
            raise ValueError("Message representative must be non-negative.")
        if message >= self.mod:
            raise MessageTooLongError(
                f"Message representative needs {message.bit_length()} bits, must be below the "
                f"{self.mod.bit_length()}-bit modulus.")
        return pow(message, self.expo, self.mod)

    def to_text(self) -> str:
        """Key text for this key."""
        return codec.encode_key(self.expo, self.mod)

    @classmethod
    def from_text(cls: type[_KeyT], text: str) -> _KeyT:
        """Loads a key from key text.

        Raises:
            MalformedKeyError: If the text is malformed or either component is zero.
        """
        expo, mod = codec.decode_key(text)
        if not expo or not mod:
            raise MalformedKeyError("Key exponent and modulus must both be non-zero.")
        return cls(mod, expo)


class RSAPubKey(RSAKey):
    """Public key: encrypts, and converts to and from PKCS1 PEM."""

    def encrypt(self, message: bytes) -> str:
        """Use the public key to encrypt the message.

        Warning! Textbook RSA, unsecure!

        Args:
            message: The message to encrypt. Read as one unsigned integer, which must be below the modulus.

        Returns:
            Base64 encoded ciphertext.

        Raises:
            MessageTooLongError: If the message integer is not below the modulus.
        """
        warnings.warn("Textbook RSA encryption is unsecure! Please use with care.", RuntimeWarning)
        return codec.b64_enc(self.c_rsa(codec.bytes_to_integer(message)))

    def to_pem(self) -> str:
        """The key as a PKCS1 ``RSA PUBLIC KEY`` PEM block, readable by standard tooling."""
        keydata = rfc8017.RSAPublicKey()
        keydata["modulus"] = self.mod
        keydata["publicExponent"] = self.expo
        body = base64.b64encode(encoder.encode(keydata)).decode("ascii")
        return "\n".join([PEM_HEADER, *textwrap.wrap(body, PEM_WIDTH), PEM_FOOTER]) + "\n"

    @classmethod
    def from_pem(cls, text: str) -> "RSAPubKey":
        """Loads a public key from a PKCS1 PEM block.

        Raises:
            MalformedKeyError: If the armour, the base64 body or the DER structure is invalid, or a component is not
                positive.
        """
        lines = [line.strip() for line in text.strip().splitlines()]
        if len(lines) < 2 or lines[0] != PEM_HEADER or lines[-1] != PEM_FOOTER:
            raise MalformedKeyError(f"Expected a block between {PEM_HEADER} and {PEM_FOOTER}.")
        try:
            der = base64.b64decode("".join(lines[1:-1]), validate=True)
            keydata, rest = decoder.decode(der, asn1Spec=rfc8017.RSAPublicKey())
        except (ValueError, error.PyAsn1Error) as exc:
            raise MalformedKeyError("PEM body is not a DER encoded RSAPublicKey.") from exc
        if rest:
            raise MalformedKeyError(f"PEM body has {len(rest)} trailing bytes.")
        mod, expo = int(keydata["modulus"]), int(keydata["publicExponent"])
        if mod <= 0 or expo <= 0:
            raise MalformedKeyError("Key exponent and modulus must both be positive.")
        return cls(mod, expo)

    def export(self, file: pathlib.Path) -> None:
        """Writes `to_pem` to `file`."""
        pathlib.Path(file).write_text(self.to_pem(), encoding="ascii")

    @classmethod
    def import_key(cls, file: pathlib.Path) -> "RSAPubKey":
        """Reads a public key from a PEM file, see `from_pem`."""
        return cls.from_pem(pathlib.Path(file).read_text(encoding="ascii"))


class RSAPrivKey(RSAKey):
    """Private key: decrypts. Never leaves its owner, so it has no export path besides key text."""

    def decrypt(self, message: str, length: int | None = None) -> bytes:
        """Decrypts the message using the private key.

        The integer to bytes conversion cannot know about zero bytes at the high-order end of the original message, so
        without `length` those are dropped.

        Args:
            message: Base64 encoded ciphertext.
            length: Optional exact byte length of the original message.

        Returns:
            The decrypted message.

        Raises:
            MalformedCiphertextError: If the ciphertext is not valid base64.
            MessageTooLongError: If the ciphertext integer is not below the modulus.
            ValueError: If the plaintext does not fit in `length` bytes.
        """
        try:
            ciphertext = codec.b64_dec(message)
        except (binascii.Error, UnicodeEncodeError) as exc:
            raise MalformedCiphertextError("Ciphertext is not valid base64.") from exc
        clear = self.c_rsa(ciphertext)
        if length is None:
            return codec.minimal_bytes(clear)
        try:
            return codec.integer_to_bytes(clear, length)
        except OverflowError as exc:
            raise ValueError(f"Decrypted message does not fit in {length} bytes.") from exc


class KeyPair(typing.NamedTuple):
    """Private and public key sharing one modulus."""
    private: RSAPrivKey
    public: RSAPubKey

    @classmethod
    def generate(cls, bits: int, cancel: threading.Event | None = None, timeout: float | None = None) -> "KeyPair":
        """Generates a fresh key pair of `bits` bits.

        Args:
            bits: Key size in bits. Multiple of 8 and at least 32, not re-validated here.
            cancel: Optional cancellation token for prime generation.
            timeout: Optional limit in seconds for prime generation.
        """
        n, d, e = keygen.derive_key_material(bits, cancel, timeout)
        return cls(RSAPrivKey(n, d), RSAPubKey(n, e))

    @classmethod
    def from_text(cls, private_text: str, public_text: str) -> "KeyPair":
        """Loads a key pair from its two key texts.

        Raises:
            MalformedKeyError: If either text is malformed or the moduli differ.
        """
        private = RSAPrivKey.from_text(private_text)
        public = RSAPubKey.from_text(public_text)
        if private.mod != public.mod:
            raise MalformedKeyError("Private and public key do not share a modulus.")
        return cls(private, public)

    def to_text(self) -> tuple[str, str]:
        """Tuple of (private key text, public key text)."""
        return self.private.to_text(), self.public.to_text()


def encrypt(message: bytes, public_key_text: str) -> str:
    """Encrypts `message` with the public key given as key text.

    Raises:
        MalformedKeyError: If the key text is malformed.
        MessageTooLongError: If the message integer is not below the modulus.
    """
    return RSAPubKey.from_text(public_key_text).encrypt(message)


def decrypt(ciphertext: str, private_key_text: str, length: int | None = None) -> bytes:
    """Decrypts `ciphertext` with the private key given as key text.

    See `RSAPrivKey.decrypt` for the meaning of `length`.

    Raises:
        MalformedKeyError: If the key text is malformed.
    """
    return RSAPrivKey.from_text(private_key_text).decrypt(ciphertext, length)
