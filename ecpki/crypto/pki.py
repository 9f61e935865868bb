"""X.509 certificate construction and chain checks.

This module turns a CertificateTemplate plus keys into a signed certificate:
- build_root_certificate(): self-signed, subject == issuer
- build_leaf_certificate(): issued by a parent, signed with the parent's key
- verify_issued_by(): issuer name matches and signature verifies
- verify_self_signed() / verify_chain(): root and leaf-to-root checks
- check_validity(), get_common_name(), cert_fingerprint_hex()

Who signs and whose key is certified are separate parameters on the leaf
builder: the root private key signs, the leaf public key is embedded.
Every built certificate is re-parsed from its DER before being returned,
so malformed output fails here rather than at first use.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

from cryptography import x509
from cryptography.exceptions import InternalError, InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from ..common.errors import EncodingFailure, SigningFailure
from ..common.models import (
    KEY_USAGE_FLAGS,
    LEAF_TEMPLATE,
    ROOT_TEMPLATE,
    CertificateTemplate,
    DistinguishedName,
    KeyPair,
)
from ..common.utils import add_years, now_utc
from .keys import curve_name, signature_hash

EXTENDED_KEY_USAGE_OIDS = {
    "any": ExtendedKeyUsageOID.ANY_EXTENDED_KEY_USAGE,
    "server_auth": ExtendedKeyUsageOID.SERVER_AUTH,
    "client_auth": ExtendedKeyUsageOID.CLIENT_AUTH,
    "code_signing": ExtendedKeyUsageOID.CODE_SIGNING,
    "email_protection": ExtendedKeyUsageOID.EMAIL_PROTECTION,
    "time_stamping": ExtendedKeyUsageOID.TIME_STAMPING,
    "ocsp_signing": ExtendedKeyUsageOID.OCSP_SIGNING,
}


def to_x509_name(dn: DistinguishedName) -> x509.Name:
    """Convert a DistinguishedName into an x509.Name (C, O, CN order)."""
    attrs = []
    if dn.country:
        attrs.append(x509.NameAttribute(NameOID.COUNTRY_NAME, dn.country))
    if dn.organization:
        attrs.append(x509.NameAttribute(NameOID.ORGANIZATION_NAME, dn.organization))
    attrs.append(x509.NameAttribute(NameOID.COMMON_NAME, dn.common_name))
    return x509.Name(attrs)


def key_usage(flags: Iterable[str]) -> x509.KeyUsage:
    """Build a KeyUsage extension value with exactly `flags` set."""
    flags = set(flags)
    values = {name: name in flags for name in KEY_USAGE_FLAGS}
    return x509.KeyUsage(encipher_only=False, decipher_only=False, **values)


def _public_der(key: ec.EllipticCurvePublicKey) -> bytes:
    return key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def certifies(cert: x509.Certificate, public_key: ec.EllipticCurvePublicKey) -> bool:
    """True if `cert` embeds `public_key` as its subject key."""
    return _public_der(cert.public_key()) == _public_der(public_key)


def _authority_key_id(parent: x509.Certificate) -> x509.AuthorityKeyIdentifier:
    try:
        ski = parent.extensions.get_extension_for_class(x509.SubjectKeyIdentifier)
    except x509.ExtensionNotFound:
        return x509.AuthorityKeyIdentifier.from_issuer_public_key(parent.public_key())
    return x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(ski.value)


def _builder(
    template: CertificateTemplate,
    subject: x509.Name,
    issuer: x509.Name,
    public_key: ec.EllipticCurvePublicKey,
    now: Optional[datetime],
) -> x509.CertificateBuilder:
    not_before = now or now_utc()
    serial = template.serial_number or x509.random_serial_number()

    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(public_key)
        .serial_number(serial)
        .not_valid_before(not_before)
        .not_valid_after(add_years(not_before, template.validity_years))
        .add_extension(x509.BasicConstraints(ca=template.is_ca, path_length=None), critical=True)
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(public_key), critical=False)
    )
    if template.key_usage:
        builder = builder.add_extension(key_usage(template.key_usage), critical=True)
    if template.extended_key_usage:
        builder = builder.add_extension(
            x509.ExtendedKeyUsage([EXTENDED_KEY_USAGE_OIDS[u] for u in template.extended_key_usage]),
            critical=False,
        )
    return builder


def _sign_and_parse(builder: x509.CertificateBuilder, signer: ec.EllipticCurvePrivateKey) -> x509.Certificate:
    try:
        cert = builder.sign(private_key=signer, algorithm=signature_hash(curve_name(signer)))
    except (ValueError, TypeError, InternalError) as e:
        raise SigningFailure(f"failed to create certificate: {e}") from e

    # Round-trip through DER so what we return is exactly what gets written
    try:
        der = cert.public_bytes(serialization.Encoding.DER)
        return x509.load_der_x509_certificate(der)
    except (ValueError, InternalError) as e:
        raise EncodingFailure(f"failed to parse certificate: {e}") from e


def build_root_certificate(
    key_pair: KeyPair,
    template: CertificateTemplate = ROOT_TEMPLATE,
    now: Optional[datetime] = None,
) -> x509.Certificate:
    """Build a self-signed certificate for `key_pair`.

    The pair's private key signs a certificate over its own public key,
    with the template subject used as issuer too.

    Raises:
        SigningFailure: if the template is inconsistent or signing fails
        EncodingFailure: if the signed certificate cannot be re-parsed
    """
    if template.issuer is not None and template.issuer != template.subject:
        raise SigningFailure("self-signed certificate requires issuer == subject")

    try:
        name = to_x509_name(template.subject)
        builder = _builder(template, name, name, key_pair.public_key, now)
    except ValueError as e:
        raise SigningFailure(f"invalid root template: {e}") from e

    return _sign_and_parse(builder, key_pair.private_key)


def build_leaf_certificate(
    parent: x509.Certificate,
    leaf_public_key: ec.EllipticCurvePublicKey,
    signer_private_key: ec.EllipticCurvePrivateKey,
    template: CertificateTemplate = LEAF_TEMPLATE,
    now: Optional[datetime] = None,
) -> x509.Certificate:
    """Build a certificate for `leaf_public_key` issued by `parent`.

    The issuer name is copied from the parent's subject. The signature is
    made with `signer_private_key`, which must be the key `parent`
    certifies.

    Raises:
        SigningFailure: if there is no parent, the signer is not the
            parent's key, the template is inconsistent or signing fails
        EncodingFailure: if the signed certificate cannot be re-parsed
    """
    if parent is None:
        raise SigningFailure("no parent certificate to issue from")
    if template.issuer is not None and to_x509_name(template.issuer) != parent.subject:
        raise SigningFailure("template issuer does not match parent subject")
    if not certifies(parent, signer_private_key.public_key()):
        raise SigningFailure("signing key does not match the parent certificate's public key")

    try:
        builder = _builder(template, to_x509_name(template.subject), parent.subject, leaf_public_key, now)
        builder = builder.add_extension(_authority_key_id(parent), critical=False)
    except ValueError as e:
        raise SigningFailure(f"invalid leaf template: {e}") from e

    return _sign_and_parse(builder, signer_private_key)


def verify_issued_by(cert: x509.Certificate, issuer: x509.Certificate) -> bool:
    """True if `cert` names `issuer` as issuer and its signature verifies."""
    try:
        cert.verify_directly_issued_by(issuer)
        return True
    except (ValueError, TypeError, InvalidSignature):
        return False


def verify_self_signed(cert: x509.Certificate) -> bool:
    """True if `cert` is issued by itself and signed with its own key."""
    return verify_issued_by(cert, cert)


def verify_chain(leaf: x509.Certificate, root: x509.Certificate) -> bool:
    """Check a two-tier chain: root self-signed, leaf issued by root."""
    return verify_self_signed(root) and verify_issued_by(leaf, root)


def check_validity(cert: x509.Certificate, at: Optional[datetime] = None) -> bool:
    """True if `at` (default: now) falls inside the certificate's validity window.

    A naive `at` is taken to be UTC.
    """
    at = at or now_utc()
    if at.tzinfo is None:
        at = at.replace(tzinfo=timezone.utc)
    return cert.not_valid_before_utc <= at <= cert.not_valid_after_utc


def get_common_name(cert: x509.Certificate) -> str:
    """Extract Common Name from certificate subject."""
    return cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value


def cert_fingerprint_hex(cert: x509.Certificate) -> str:
    """Return the SHA-256 fingerprint of the certificate as a hex string."""
    return cert.fingerprint(hashes.SHA256()).hex()
