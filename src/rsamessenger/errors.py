"""Exception hierarchy for the RSA core.

Every error raised by the package derives from `RSAError`, and additionally from the builtin exception a caller would
naturally expect, so that ``except ValueError`` keeps working for bad inputs.
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0


class RSAError(Exception):
    """Base class for all rsamessenger errors."""


class MalformedKeyError(RSAError, ValueError):
    """Key text is not valid base64 or does not follow the length-prefixed layout."""


class MessageTooLongError(RSAError, ValueError):
    """The message representative is not strictly smaller than the modulus."""


class NotInvertibleError(RSAError, ValueError):
    """No modular inverse exists, as the operands are not coprime."""


class EntropyExhaustedError(RSAError, RuntimeError):
    """The random source failed to produce bytes."""


class GenerationCancelledError(RSAError, RuntimeError):
    """Prime generation was cancelled or ran out of time."""


class MalformedCiphertextError(RSAError, ValueError):
    """Ciphertext text is not valid base64."""
