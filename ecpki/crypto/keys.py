"""Elliptic-curve key pairs and ECDSA signing.

This module provides helpers for the NIST prime curves:
- generate_key_pair(): Fresh private/public key pair on a named curve
- signature_hash(): SHA-2 hash matching the curve's strength
- sign_message(): ECDSA signature over bytes or str
- verify_signature(): Check an ECDSA signature, True/False

Key generation draws from the library's CSPRNG. If that source fails
the error surfaces as RandomSourceFailure; there is no fallback source.
"""

from typing import Dict, Tuple, Type, Union

from cryptography.exceptions import InternalError, InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec

from ..common.errors import RandomSourceFailure
from ..common.models import DEFAULT_CURVE, KeyPair

CURVES: Dict[str, Tuple[Type[ec.EllipticCurve], Type[hashes.HashAlgorithm]]] = {
    "P-256": (ec.SECP256R1, hashes.SHA256),
    "P-384": (ec.SECP384R1, hashes.SHA384),
    "P-521": (ec.SECP521R1, hashes.SHA512),
}


def _lookup(curve: str) -> Tuple[Type[ec.EllipticCurve], Type[hashes.HashAlgorithm]]:
    try:
        return CURVES[curve.upper()]
    except KeyError:
        raise ValueError(f"unsupported curve {curve!r}, expected one of {', '.join(CURVES)}") from None


def curve_name(key: Union[ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey]) -> str:
    """Return our curve name ("P-256", ...) for a key."""
    for name, (curve_cls, _) in CURVES.items():
        if isinstance(key.curve, curve_cls):
            return name
    raise ValueError(f"unsupported curve {key.curve.name!r}")


def signature_hash(curve: str) -> hashes.HashAlgorithm:
    """Hash algorithm paired with `curve` for ECDSA (P-256 -> SHA-256, ...)."""
    return _lookup(curve)[1]()


def generate_key_pair(curve: str = DEFAULT_CURVE) -> KeyPair:
    """Generate a new EC key pair on `curve`.

    Raises:
        ValueError: if the curve is not supported
        RandomSourceFailure: if the random source failed
    """
    curve_cls, _ = _lookup(curve)
    try:
        private_key = ec.generate_private_key(curve_cls())
    except (InternalError, OSError) as e:
        raise RandomSourceFailure(f"ec.generate_private_key: {e}") from e

    return KeyPair(
        curve=curve.upper(),
        private_key=private_key,
        public_key=private_key.public_key(),
    )


def sign_message(key: ec.EllipticCurvePrivateKey, message: Union[str, bytes]) -> bytes:
    """Sign a message with ECDSA using the curve's hash.

    Returns a DER-encoded (r, s) signature. Signatures are randomized, so
    signing the same message twice gives different bytes.
    """
    if isinstance(message, str):
        message = message.encode("utf-8")
    return key.sign(message, ec.ECDSA(signature_hash(curve_name(key))))


def verify_signature(
    key: ec.EllipticCurvePublicKey,
    message: Union[str, bytes],
    signature: bytes,
) -> bool:
    """Verify an ECDSA signature. Returns True if valid, False otherwise."""
    if isinstance(message, str):
        message = message.encode("utf-8")

    try:
        key.verify(signature, message, ec.ECDSA(signature_hash(curve_name(key))))
        return True
    except InvalidSignature:
        return False
