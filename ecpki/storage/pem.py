"""PEM artifacts: DER marshaling, text framing and file persistence.

An artifact is a type label plus DER bytes. The textual form is

    -----BEGIN <LABEL>-----
    <base64 DER, wrapped at a fixed width>
    -----END <LABEL>-----

Private keys are SEC1 (RFC 5915) ECPrivateKey structures, public keys are
SubjectPublicKeyInfo, certificates are their raw DER.

The body is wrapped at 64 characters by default (RFC 7468, and what
OpenSSL and cryptography emit), not 76; pass `width` to change it.
"""

from enum import Enum
from pathlib import Path
from typing import Union

from cryptography import x509
from cryptography.exceptions import InternalError
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from ..common.errors import EncodingFailure, PersistenceFailure
from ..common.utils import b64d, b64e

LINE_WIDTH = 64


class ArtifactKind(str, Enum):
    PRIVATE_KEY = "EC PRIVATE KEY"
    PUBLIC_KEY = "EC PUBLIC KEY"
    CERTIFICATE = "CERTIFICATE"


class PEMArtifact:
    """A labelled DER blob ready to be framed as PEM."""

    def __init__(self, label: str, der: bytes):
        self.label = label
        self.der = bytes(der)

    def to_pem(self, width: int = LINE_WIDTH) -> bytes:
        """Frame the DER payload as PEM text (ASCII bytes)."""
        payload = b64e(self.der)
        lines = [f"-----BEGIN {self.label}-----"]
        lines.extend(payload[i:i + width] for i in range(0, len(payload), width))
        lines.append(f"-----END {self.label}-----")
        return ("\n".join(lines) + "\n").encode("ascii")

    def __eq__(self, other) -> bool:
        if not isinstance(other, PEMArtifact):
            return NotImplemented
        return self.label == other.label and self.der == other.der

    def __repr__(self) -> str:
        return f"PEMArtifact(label={self.label!r}, der=<{len(self.der)} bytes>)"


def encode(kind: Union[ArtifactKind, str], der: bytes) -> PEMArtifact:
    """Wrap DER bytes in an artifact labelled for `kind`."""
    label = kind.value if isinstance(kind, ArtifactKind) else str(kind)
    return PEMArtifact(label, der)


def decode_pem(text: Union[str, bytes]) -> PEMArtifact:
    """Parse the first PEM block in `text`.

    Raises:
        EncodingFailure: if the armor is missing, mismatched or the
            payload is not valid base64
    """
    if isinstance(text, bytes):
        try:
            text = text.decode("ascii")
        except UnicodeDecodeError as e:
            raise EncodingFailure(f"PEM text is not ASCII: {e}") from e

    lines = [line.strip() for line in text.splitlines()]
    begin = next((i for i, line in enumerate(lines) if line.startswith("-----BEGIN ")), None)
    if begin is None or not lines[begin].endswith("-----"):
        raise EncodingFailure("no PEM BEGIN marker found")
    label = lines[begin][len("-----BEGIN "):-len("-----")]

    end_marker = f"-----END {label}-----"
    try:
        end = lines.index(end_marker, begin + 1)
    except ValueError:
        raise EncodingFailure(f"missing {end_marker!r}") from None

    try:
        der = b64d("".join(lines[begin + 1:end]))
    except ValueError as e:
        raise EncodingFailure(f"bad PEM payload for {label!r}: {e}") from e
    return PEMArtifact(label, der)


def private_key_der(key: ec.EllipticCurvePrivateKey) -> bytes:
    """Marshal an EC private key to SEC1 DER."""
    try:
        return key.private_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )
    except (ValueError, TypeError, InternalError) as e:
        raise EncodingFailure(f"private key marshal: {e}") from e


def public_key_der(key: ec.EllipticCurvePublicKey) -> bytes:
    """Marshal an EC public key to SubjectPublicKeyInfo DER."""
    try:
        return key.public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
    except (ValueError, TypeError, InternalError) as e:
        raise EncodingFailure(f"public key marshal: {e}") from e


def certificate_der(cert: x509.Certificate) -> bytes:
    try:
        return cert.public_bytes(serialization.Encoding.DER)
    except (ValueError, TypeError, InternalError) as e:
        raise EncodingFailure(f"certificate marshal: {e}") from e


def encode_private_key(key: ec.EllipticCurvePrivateKey) -> PEMArtifact:
    return encode(ArtifactKind.PRIVATE_KEY, private_key_der(key))


def encode_public_key(key: ec.EllipticCurvePublicKey) -> PEMArtifact:
    return encode(ArtifactKind.PUBLIC_KEY, public_key_der(key))


def encode_certificate(cert: x509.Certificate) -> PEMArtifact:
    return encode(ArtifactKind.CERTIFICATE, certificate_der(cert))


def write_artifact(artifact: PEMArtifact, path: Union[str, Path], width: int = LINE_WIDTH) -> Path:
    """Write `artifact` as PEM to `path`, replacing any existing file.

    Raises:
        PersistenceFailure: if the file cannot be created or written
    """
    path = Path(path)
    data = artifact.to_pem(width)
    try:
        with open(path, "wb") as f:
            f.write(data)
    except OSError as e:
        raise PersistenceFailure(f"cannot write {path}: {e}", path=path) from e
    return path


def read_artifact(path: Union[str, Path]) -> PEMArtifact:
    """Read and decode the PEM file at `path`."""
    path = Path(path)
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise PersistenceFailure(f"cannot read {path}: {e}", path=path) from e
    return decode_pem(data)


def load_private_key(artifact: PEMArtifact) -> ec.EllipticCurvePrivateKey:
    """Parse the DER payload of a private key artifact."""
    try:
        return serialization.load_der_private_key(artifact.der, password=None)
    except (ValueError, TypeError) as e:
        raise EncodingFailure(f"private key parse: {e}") from e


def load_public_key(artifact: PEMArtifact) -> ec.EllipticCurvePublicKey:
    """Parse the DER payload of a public key artifact."""
    try:
        return serialization.load_der_public_key(artifact.der)
    except (ValueError, TypeError) as e:
        raise EncodingFailure(f"public key parse: {e}") from e


def load_certificate(artifact: PEMArtifact) -> x509.Certificate:
    """Parse the DER payload of a certificate artifact."""
    try:
        return x509.load_der_x509_certificate(artifact.der)
    except ValueError as e:
        raise EncodingFailure(f"certificate parse: {e}") from e
