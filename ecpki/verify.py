"""Offline check of a bootstrapped PKI directory.

Reads the PEM files written by ecpki.bootstrap and checks:
1. the root certificate is self-signed
2. the leaf certificate is issued and signed by the root
3. each certificate embeds the public key stored beside it
4. both certificates are inside their validity window

Example:
    python -m ecpki.verify certs
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from .bootstrap import LEAF_CERT_FILE, LEAF_PUBLIC_KEY_FILE, ROOT_CERT_FILE, ROOT_PUBLIC_KEY_FILE
from .common.errors import PKIError
from .crypto.pki import certifies, check_validity, get_common_name, verify_issued_by, verify_self_signed
from .storage.pem import load_certificate, load_public_key, read_artifact


def verify_directory(directory: Path) -> List[Tuple[str, bool]]:
    """Run every check against the files in `directory`.

    Returns (description, passed) pairs in check order.

    Raises:
        PKIError: if a file is missing or cannot be parsed
    """
    directory = Path(directory)
    root = load_certificate(read_artifact(directory / ROOT_CERT_FILE))
    leaf = load_certificate(read_artifact(directory / LEAF_CERT_FILE))
    root_pub = load_public_key(read_artifact(directory / ROOT_PUBLIC_KEY_FILE))
    leaf_pub = load_public_key(read_artifact(directory / LEAF_PUBLIC_KEY_FILE))

    return [
        (f"root {get_common_name(root)!r} is self-signed", verify_self_signed(root)),
        (f"leaf {get_common_name(leaf)!r} is signed by root", verify_issued_by(leaf, root)),
        ("root certificate embeds root public key", certifies(root, root_pub)),
        ("leaf certificate embeds leaf public key", certifies(leaf, leaf_pub)),
        ("root certificate is within its validity window", check_validity(root)),
        ("leaf certificate is within its validity window", check_validity(leaf)),
    ]


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Verify a bootstrapped root + leaf PKI directory")
    parser.add_argument("directory", nargs="?", default=".", help="Directory holding the PEM files")
    args = parser.parse_args(argv)

    try:
        checks = verify_directory(Path(args.directory))
    except PKIError as e:
        print(f"[FAIL] {e}", file=sys.stderr)
        return 1

    for description, passed in checks:
        print(f"[{'PASS' if passed else 'FAIL'}] {description}")

    if all(passed for _, passed in checks):
        print("RESULT: PASS")
        return 0
    print("RESULT: FAIL")
    return 1


if __name__ == "__main__":
    sys.exit(main())
