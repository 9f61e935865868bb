"""Pydantic models for key pairs, certificate templates and run results.

These models are the injectable configuration of the bootstrap: names,
curve, validity periods and usages are parameters here rather than
literals buried in the builder. The module-level ROOT_TEMPLATE and
LEAF_TEMPLATE carry the default two-tier layout.
"""

from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Tuple

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import ec
from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict

from .errors import PKIError

CURVE_NAMES = ("P-256", "P-384", "P-521")
DEFAULT_CURVE = "P-256"

KEY_USAGE_FLAGS = (
    "digital_signature",
    "content_commitment",
    "key_encipherment",
    "data_encipherment",
    "key_agreement",
    "key_cert_sign",
    "crl_sign",
)

EXTENDED_KEY_USAGES = (
    "any",
    "server_auth",
    "client_auth",
    "code_signing",
    "email_protection",
    "time_stamping",
    "ocsp_signing",
)

# RFC 5280 caps serials at 20 octets; cryptography requires < 2**159.
MAX_SERIAL = 2 ** 159


class Model(BaseModel):
    """Base class for all immutable models."""
    model_config = ConfigDict(
        frozen=True,
        extra='forbid',
        str_strip_whitespace=True,
        validate_default=True,
    )


class DistinguishedName(Model):
    """Subject or issuer name: common name, organization, country."""
    common_name: str = Field(min_length=1)
    organization: Optional[str] = None
    country: Optional[str] = None

    @field_validator("country")
    @classmethod
    def _two_letter_country(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if len(v) != 2 or not v.isalpha():
            raise ValueError(f"country must be a two-letter code, got {v!r}")
        return v.upper()


class CertificateTemplate(Model):
    """Everything needed to build one certificate except the keys.

    serial_number=None draws a random serial at build time. issuer=None
    derives the issuer (own subject for a root, parent subject for a leaf).
    """
    serial_number: Optional[int] = None
    subject: DistinguishedName
    issuer: Optional[DistinguishedName] = None
    validity_years: int = Field(gt=0)
    key_usage: FrozenSet[str] = frozenset()
    extended_key_usage: Tuple[str, ...] = ()
    is_ca: bool = False

    @field_validator("serial_number")
    @classmethod
    def _serial_in_range(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and not 0 < v < MAX_SERIAL:
            raise ValueError("serial number must be positive and below 2**159")
        return v

    @field_validator("key_usage")
    @classmethod
    def _known_key_usage(cls, v: FrozenSet[str]) -> FrozenSet[str]:
        unknown = sorted(set(v) - set(KEY_USAGE_FLAGS))
        if unknown:
            raise ValueError(f"unknown key usage flags: {', '.join(unknown)}")
        return v

    @field_validator("extended_key_usage")
    @classmethod
    def _known_extended_key_usage(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        unknown = [u for u in v if u not in EXTENDED_KEY_USAGES]
        if unknown:
            raise ValueError(f"unknown extended key usages: {', '.join(unknown)}")
        return v


ROOT_TEMPLATE = CertificateTemplate(
    serial_number=1,
    subject=DistinguishedName(
        common_name="Root Common Name",
        organization="Root Organisation Name",
        country="US",
    ),
    validity_years=5,
    key_usage=frozenset({"key_encipherment"}),
    extended_key_usage=("any",),
    is_ca=True,
)

LEAF_TEMPLATE = CertificateTemplate(
    serial_number=1,
    subject=DistinguishedName(
        common_name="Leaf Common Name",
        organization="Leaf Organisation Name",
        country="US",
    ),
    validity_years=2,
    key_usage=frozenset({"digital_signature", "data_encipherment", "key_encipherment"}),
    extended_key_usage=("server_auth", "client_auth", "code_signing", "email_protection"),
    is_ca=False,
)


class BootstrapConfig(Model):
    """Parameters of one bootstrap run."""
    curve: str = DEFAULT_CURVE
    output_dir: Path = Path(".")
    root: CertificateTemplate = ROOT_TEMPLATE
    leaf: CertificateTemplate = LEAF_TEMPLATE
    random_serials: bool = False

    @field_validator("curve")
    @classmethod
    def _supported_curve(cls, v: str) -> str:
        name = v.upper()
        if name not in CURVE_NAMES:
            raise ValueError(f"unsupported curve {v!r}, expected one of {', '.join(CURVE_NAMES)}")
        return name


class KeyPair(Model):
    """An EC private key and its public half."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    curve: str
    private_key: ec.EllipticCurvePrivateKey
    public_key: ec.EllipticCurvePublicKey


class StepResult(Model):
    """Outcome of one pipeline step."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    ok: bool
    path: Optional[Path] = None
    error: Optional[PKIError] = None


class BootstrapResult(Model):
    """Outcome of a whole run: every step attempted, in order."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    steps: List[StepResult] = Field(default_factory=list)
    written: Dict[str, Path] = Field(default_factory=dict)
    root_certificate: Optional[x509.Certificate] = None
    leaf_certificate: Optional[x509.Certificate] = None

    @property
    def ok(self) -> bool:
        return all(s.ok for s in self.steps)

    @property
    def failure(self) -> Optional[StepResult]:
        for s in self.steps:
            if not s.ok:
                return s
        return None
