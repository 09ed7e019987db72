"""The Command Line Interface for the messenger RSA core.

A hybrid CLI/ICLI: any argument missing from the command line is asked for interactively, unless non-interactive
mode is on, in which case a missing argument is an error. Keys are kept in the messenger's JSON key files.

Typical usage example:

    rsamessenger keygen --keysize 1024
    rsamessenger encrypt -p public.key --message "hi"
    OR
    python -m rsamessenger
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import argparse
import json
import os
import pathlib
import sys
import typing
import warnings

import rsamessenger
from rsamessenger import keygen


class HelpData(typing.NamedTuple):
    description: str
    format: typing.Callable = str
    choices: list[str] | None = None
    default: typing.Any = None


def key_size(value: str) -> int:
    """Argparse type for key sizes: a multiple of 8, at least `keygen.MIN_KEY_BITS`."""
    try:
        bits = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer.") from exc
    if bits % 8 != 0 or bits < keygen.MIN_KEY_BITS:
        raise argparse.ArgumentTypeError(f"Key size must be a multiple of 8 and at least {keygen.MIN_KEY_BITS}.")
    return bits


help_dict: dict[str, HelpData] = {
    "subcommand": HelpData(
        description="The available subcommands.",
        choices=["keygen", "encrypt", "decrypt", "export"],
    ),
    "keygen": HelpData("Key pair generation utility."),
    "encrypt": HelpData("Encryption utility."),
    "decrypt": HelpData("Decryption utility."),
    "export": HelpData("Export the public key as a PKCS1 PEM file."),
    "public_key": HelpData(
        description="Location of the public key file.",
        format=pathlib.Path,
        default="public.key",
    ),
    "private_key": HelpData(
        description="Location of the private key file.",
        format=pathlib.Path,
        default="private.key",
    ),
    "message": HelpData(description="Message, or ciphertext when decrypting."),
    "encoding": HelpData(description="Payload encoding.", choices=["utf-8", "ascii"], default="utf-8"),
    "keysize": HelpData(description="Key size (in bits).", format=key_size, default=1024),
    "pem": HelpData(description="Destination of the PEM file.", format=pathlib.Path),
}

needs = {
    "keygen": ("public_key", "private_key", "keysize"),
    "encrypt": ("public_key", "message", "encoding"),
    "decrypt": ("private_key", "message", "encoding"),
    "export": ("public_key", "pem"),
}

pubkey = argparse.ArgumentParser(add_help=False)
pubkey.add_argument("--public_key", "-p", type=help_dict["public_key"].format, help=help_dict["public_key"].description)
privkey = argparse.ArgumentParser(add_help=False)
privkey.add_argument("--private_key",
                     "-P",
                     type=help_dict["private_key"].format,
                     help=help_dict["private_key"].description)
payloads = argparse.ArgumentParser(add_help=False)
payloads.add_argument("--message", "-m", type=help_dict["message"].format, help=help_dict["message"].description)
payloads.add_argument("--encoding", "-e", choices=help_dict["encoding"].choices, help=help_dict["encoding"].description)
corep = argparse.ArgumentParser(prog="rsamessenger")
corep.add_argument("--version", "-v", action="version", version=f"%(prog)s {rsamessenger.__version__}")
corep.add_argument("--non-interactive", "-n", action="store_true", help="Enable non-interactive mode")
commands = corep.add_subparsers(dest="subcommand", title="Subcommands")

keygen_cmd = commands.add_parser("keygen", parents=[privkey, pubkey], help=help_dict["keygen"].description)
keygen_cmd.add_argument("--keysize", type=key_size, help=help_dict["keysize"].description)
keygen_cmd.add_argument("--overwrite", "-o", action="store_true", help="Overwrite existing key files.")
commands.add_parser("encrypt", parents=[pubkey, payloads], help=help_dict["encrypt"].description)
commands.add_parser("decrypt", parents=[privkey, payloads], help=help_dict["decrypt"].description)
export_cmd = commands.add_parser("export", parents=[pubkey], help=help_dict["export"].description)
export_cmd.add_argument("--pem", type=help_dict["pem"].format, help=help_dict["pem"].description)


def input_handler(arg: str, interactive: bool, prntr: typing.Callable = print):
    """Resolve a missing argument: its default when non-interactive, a prompt otherwise."""
    helper_data = help_dict[arg]
    if not interactive:
        if helper_data.default is None:
            raise IOError(f"Argument {arg} is missing and non-interactive mode is active.")
        return helper_data.format(helper_data.default)
    prntr(f"Please specify the {arg}!")
    prntr("Description: " + helper_data.description)
    if helper_data.choices:
        prntr("Options: " + ", ".join(helper_data.choices))
    if helper_data.default is not None:
        prntr(f"Default value: {helper_data.default}")
        prntr("To accept default just click enter. Otherwise specify value.")
    while True:
        ch = input(f"{arg}: ")
        if not ch and helper_data.default is not None:
            return helper_data.format(helper_data.default)
        if ch == "":
            prntr("Please provide a value.")
            continue
        if helper_data.choices and ch not in helper_data.choices:
            prntr("Please select an option from the list.")
            continue
        try:
            return helper_data.format(ch)
        except (ValueError, argparse.ArgumentTypeError) as exc:
            prntr(f"We could not use your value: {exc}")


def read_key_file(file: pathlib.Path) -> str:
    """Key text from a messenger JSON key file.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the file is not JSON.
        MalformedKeyError: If the JSON holds no key text.
    """
    with open(file, "r", encoding="utf-8") as f:
        payload = json.load(f)
    try:
        key_text = payload["key"]
    except (KeyError, TypeError) as exc:
        raise rsamessenger.MalformedKeyError(f"{file} holds no key entry.") from exc
    if not isinstance(key_text, str):
        raise rsamessenger.MalformedKeyError(f"{file} key entry is not text.")
    return key_text


def write_key_file(file: pathlib.Path, key_text: str, private: bool) -> None:
    """Write a messenger JSON key file; the private one tracks a list of emails, the public one a single email."""
    payload = {"email": [] if private else None, "key": key_text}
    with open(file, "w", encoding="utf-8") as f:
        json.dump(payload, f)


def write_key_pair(private_file: pathlib.Path, public_file: pathlib.Path, private_text: str, public_text: str) -> None:
    """Write both key files, or neither.

    Each file is staged next to its destination first and only moved into place once both are written.
    """
    staged = [(private_file, private_file.with_name(private_file.name + ".tmp"), private_text, True),
              (public_file, public_file.with_name(public_file.name + ".tmp"), public_text, False)]
    try:
        for _, tmp, key_text, private in staged:
            write_key_file(tmp, key_text, private)
        for dest, tmp, _, _ in staged:
            os.replace(tmp, dest)
    finally:
        for _, tmp, _, _ in staged:
            tmp.unlink(missing_ok=True)


def run(args: argparse.Namespace, pspr: typing.Callable) -> int:
    """Execute a fully resolved subcommand and return the exit status."""
    match args.subcommand:
        case "keygen":
            if (args.private_key.exists() or args.public_key.exists()) and not args.overwrite:
                print("Destination private or public key already exists!", file=sys.stderr)
                return 1
            private_text, public_text = keygen.generate_key_pair(args.keysize)
            write_key_pair(args.private_key, args.public_key, private_text, public_text)
            pspr("\nKey pair generated!")
        case "encrypt":
            key_text = read_key_file(args.public_key)
            with warnings.catch_warnings():
                # The messenger knowingly uses textbook RSA; the warning is for library callers.
                warnings.filterwarnings("ignore", message="Textbook RSA", category=RuntimeWarning)
                ciph = rsamessenger.encrypt(args.message.encode(args.encoding), key_text)
            pspr("Ciphertext:")
            print(ciph)
        case "decrypt":
            clear = rsamessenger.decrypt(args.message, read_key_file(args.private_key))
            pspr("Cleartext:")
            print(clear.decode(args.encoding))
        case "export":
            rsamessenger.RSAPubKey.from_text(read_key_file(args.public_key)).export(args.pem)
            pspr(f"Public key exported to {args.pem}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Core Hybrid CLI/ICLI (Command Line Interface/Interactive Command Line Interface)"""
    args = corep.parse_args(argv)
    interactive = not args.non_interactive

    def pspr(text: str):
        """Print only if not in non-interactive mode."""
        if interactive:
            print(text)

    pspr("Welcome to the RSA Messenger!\n")
    if not args.subcommand:
        if not interactive:
            corep.error("a subcommand is required in non-interactive mode")
        args.subcommand = input_handler("subcommand", interactive)
        args.overwrite = False
    for reqs in needs[args.subcommand]:
        if getattr(args, reqs, None) is None:
            try:
                setattr(args, reqs, input_handler(reqs, interactive))
            except IOError as exc:
                corep.error(str(exc))
        else:
            pspr(f"{reqs}: {getattr(args, reqs)}")
    pspr("\nInput Complete! Executing...")
    try:
        status = run(args, pspr)
    except (rsamessenger.RSAError, OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    pspr("Goodbye!")
    return status


if __name__ == "__main__":
    sys.exit(main())
