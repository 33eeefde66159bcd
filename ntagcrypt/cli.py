import argparse
import logging
import sys

from . import __version__, config
from .encryption import TagEncryption
from .errors import NtagError
from .keys import Keys
from .tag import decode_tag


def read_file(path):
    with open(path, "rb") as f:
        return f.read()


def write_file(path, data):
    with open(path, "wb") as f:
        f.write(data)


def load_tag_and_keys(args, encrypted):
    """Load keys and tag, and derive the internal keys. Raises NtagError on failure."""
    keys = Keys.from_configuration(args.key_file)
    tag = decode_tag(args.tag_version, read_file(args.in_file), encrypted=encrypted)
    te = TagEncryption(tag, keys)
    if not te.initialize_internal_keys():
        raise NtagError("Failed to init internal keys")
    return tag, te


def report_hmacs(te):
    """Print the state of both HMACs, return True if both are valid."""
    locked_secret_ok = te.validate_locked_secret_hmac()
    unfixed_infos_ok = te.validate_unfixed_infos_hmac()
    print(f"Locked secret HMAC {'valid' if locked_secret_ok else 'not valid'}")
    print(f"Unfixed infos HMAC {'valid' if unfixed_infos_ok else 'not valid'}")
    return locked_secret_ok and unfixed_infos_ok


def cmd_decrypt(args):
    print(f"Decrypting {args.in_file} to {args.out_file}")
    tag, te = load_tag_and_keys(args, encrypted=True)
    if not te.decrypt_tag():
        raise NtagError("Failed to decrypt tag")
    report_hmacs(te)
    write_file(args.out_file, tag.to_bytes())
    return 0


def cmd_encrypt(args):
    print(f"Encrypting {args.in_file} to {args.out_file}")
    tag, te = load_tag_and_keys(args, encrypted=False)
    # the locked secret HMAC is covered by the unfixed infos HMAC, update it first
    if te.validate_locked_secret_hmac():
        print("Locked secret HMAC valid")
    else:
        print("Locked secret HMAC not valid, updating...")
        te.update_locked_secret_hmac()
    if te.validate_unfixed_infos_hmac():
        print("Unfixed infos HMAC valid")
    else:
        print("Unfixed infos HMAC not valid, updating...")
        te.update_unfixed_infos_hmac()
    if not te.encrypt_tag():
        raise NtagError("Failed to encrypt tag")
    write_file(args.out_file, tag.to_bytes())
    return 0


def cmd_verify(args):
    print(f"Verifying {args.in_file}")
    _, te = load_tag_and_keys(args, encrypted=not args.decrypted)
    if not args.decrypted and not te.decrypt_tag():
        raise NtagError("Failed to decrypt tag")
    return 0 if report_hmacs(te) else 1


def cmd_info(args):
    tag = decode_tag(args.tag_version, read_file(args.in_file), encrypted=args.encrypted)
    for name, value in tag.info().items():
        print(f"{name:>14}: {value}")
    return 0


def main(argv=None):
    """
    Decrypt and encrypt NFC figure tag dumps

    Tag versions:
    * 0: 512-byte NFC Forum Type 2 image
    * 2: 532 or 540-byte NTAG215 image

    The tool can't tell if a dump is encrypted, the command states it.

    Examples:

    - Decrypt a version 2 dump:
          $ ntagcrypt decrypt --key-file key-retail.bin --tag-version 2 figure.bin figure.dec
    - Re-encrypt it after editing:
          $ ntagcrypt encrypt --key-file key-retail.bin --tag-version 2 figure.dec figure.bin
    """
    parser = argparse.ArgumentParser(
        prog="ntagcrypt",
        description=main.__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    parser.add_argument('--debug', action='store_true', help='Enable debug output')

    tag_options = argparse.ArgumentParser(add_help=False)
    tag_options.add_argument('--tag-version', type=lambda x: int(x, 0), choices=(0, 2), required=True,
                             help='Tag version (0 or 2)')

    key_options = argparse.ArgumentParser(add_help=False)
    key_options.add_argument('--key-file', default=config.KEY_FILE,
                             help=f'Path to the 160-byte key file. def: {config.KEY_FILE}')

    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('decrypt', parents=[tag_options, key_options], help='Decrypt a tag dump')
    p.add_argument('in_file', help='Path to the encrypted tag file')
    p.add_argument('out_file', help='Path to store the decrypted tag file')
    p.set_defaults(func=cmd_decrypt)

    p = sub.add_parser('encrypt', parents=[tag_options, key_options], help='Encrypt a tag dump')
    p.add_argument('in_file', help='Path to the decrypted tag file')
    p.add_argument('out_file', help='Path to store the encrypted tag file')
    p.set_defaults(func=cmd_encrypt)

    p = sub.add_parser('verify', parents=[tag_options, key_options], help='Check the HMACs of a tag dump')
    p.add_argument('--decrypted', action='store_true', help='The dump is already decrypted')
    p.add_argument('in_file', help='Path to the tag file')
    p.set_defaults(func=cmd_verify)

    p = sub.add_parser('info', parents=[tag_options], help='Show the tag layout summary')
    p.add_argument('--encrypted', action='store_true', help='The dump is encrypted')
    p.add_argument('in_file', help='Path to the tag file')
    p.set_defaults(func=cmd_info)

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING,
                        format='%(levelname)s: %(message)s')

    try:
        ret = args.func(args)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except NtagError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if ret == 0 and args.command in ('encrypt', 'decrypt'):
        print("Done!")
    return ret


if __name__ == '__main__':
    sys.exit(main())
