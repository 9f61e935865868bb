"""Bootstrap a two-tier EC PKI: root key + self-signed root certificate,
leaf key + leaf certificate issued by the root, all written as PEM.

The run is a straight pipeline of named steps. Each step yields a
StepResult; the first failed step stops the run and nothing after it is
attempted. Files already written by earlier steps are left in place.

Example:
    python -m ecpki.bootstrap --outdir certs
"""

import argparse
import sys
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple

from pydantic import ValidationError

from .common.config import load_config
from .common.errors import PersistenceFailure, PKIError
from .common.models import CURVE_NAMES, BootstrapConfig, BootstrapResult, StepResult
from .crypto.keys import generate_key_pair
from .crypto.pki import build_leaf_certificate, build_root_certificate, cert_fingerprint_hex, get_common_name
from .storage.pem import PEMArtifact, encode_certificate, encode_private_key, encode_public_key, write_artifact

ROOT_PRIVATE_KEY_FILE = "root_private_ecdsa.pem"
ROOT_PUBLIC_KEY_FILE = "root_public_ecdsa.pem"
ROOT_CERT_FILE = "root_cert_ecdsa.pem"
LEAF_PRIVATE_KEY_FILE = "leaf_private_ecdsa.pem"
LEAF_PUBLIC_KEY_FILE = "leaf_public_ecdsa.pem"
LEAF_CERT_FILE = "leaf_cert_ecdsa.pem"

OUTPUT_FILES = (
    ROOT_PRIVATE_KEY_FILE,
    ROOT_PUBLIC_KEY_FILE,
    ROOT_CERT_FILE,
    LEAF_PRIVATE_KEY_FILE,
    LEAF_PUBLIC_KEY_FILE,
    LEAF_CERT_FILE,
)


def _run_step(name: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Tuple[StepResult, Any]:
    """Run one step, turning a PKIError into a failed StepResult."""
    try:
        value = func(*args, **kwargs)
    except PKIError as e:
        e.step = e.step or name
        return StepResult(name=name, ok=False, error=e), None
    path = value if isinstance(value, Path) else None
    return StepResult(name=name, ok=True, path=path), value


def _prepare_output_dir(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise PersistenceFailure(f"cannot create output directory {path}: {e}", path=path) from e


def _write(encoder: Callable[[], PEMArtifact], path: Path) -> Path:
    return write_artifact(encoder(), path)


def _templates(config: BootstrapConfig, verbose: bool):
    root_template, leaf_template = config.root, config.leaf
    if config.random_serials:
        return (
            root_template.model_copy(update={"serial_number": None}),
            leaf_template.model_copy(update={"serial_number": None}),
        )
    if root_template.serial_number is not None and root_template.serial_number == leaf_template.serial_number:
        if verbose:
            print(
                f"[WARN] root and leaf certificates share serial number {root_template.serial_number}; "
                "use --random-serials for unique serials",
                file=sys.stderr,
            )
    return root_template, leaf_template


def run_bootstrap(config: Optional[BootstrapConfig] = None, verbose: bool = True) -> BootstrapResult:
    """Generate both key pairs and certificates, then write the six PEM files.

    Returns a BootstrapResult listing every attempted step. On failure the
    last step is the failed one and carries the error.
    """
    config = config or BootstrapConfig()
    root_template, leaf_template = _templates(config, verbose)
    steps: List[StepResult] = []

    def run(name: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Tuple[bool, Any]:
        result, value = _run_step(name, func, *args, **kwargs)
        steps.append(result)
        if not result.ok and verbose:
            print(str(result.error), file=sys.stderr)
        return result.ok, value

    def finish(**kwargs: Any) -> BootstrapResult:
        return BootstrapResult(steps=steps, **kwargs)

    ok, root_keys = run("generate root key pair", generate_key_pair, config.curve)
    if not ok:
        return finish()

    ok, root_cert = run("build root certificate", build_root_certificate, root_keys, root_template)
    if not ok:
        return finish()

    ok, leaf_keys = run("generate leaf key pair", generate_key_pair, config.curve)
    if not ok:
        return finish(root_certificate=root_cert)

    ok, leaf_cert = run(
        "build leaf certificate",
        build_leaf_certificate,
        root_cert,
        leaf_keys.public_key,
        root_keys.private_key,
        leaf_template,
    )
    if not ok:
        return finish(root_certificate=root_cert)

    out_dir = Path(config.output_dir)
    ok, _ = run("prepare output directory", _prepare_output_dir, out_dir)
    if not ok:
        return finish(root_certificate=root_cert, leaf_certificate=leaf_cert)

    artifacts = [
        ("root private key", ROOT_PRIVATE_KEY_FILE, lambda: encode_private_key(root_keys.private_key)),
        ("root public key", ROOT_PUBLIC_KEY_FILE, lambda: encode_public_key(root_keys.public_key)),
        ("root certificate", ROOT_CERT_FILE, lambda: encode_certificate(root_cert)),
        ("leaf private key", LEAF_PRIVATE_KEY_FILE, lambda: encode_private_key(leaf_keys.private_key)),
        ("leaf public key", LEAF_PUBLIC_KEY_FILE, lambda: encode_public_key(leaf_keys.public_key)),
        ("leaf certificate", LEAF_CERT_FILE, lambda: encode_certificate(leaf_cert)),
    ]

    written = {}
    for kind, filename, encoder in artifacts:
        ok, path = run(f"write {kind}", _write, encoder, out_dir / filename)
        if not ok:
            break
        written[filename] = path
        if verbose:
            print(f"ECDSA {kind} saved to {str(path)!r}")

    return finish(written=written, root_certificate=root_cert, leaf_certificate=leaf_cert)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Bootstrap a root + leaf ECDSA PKI as PEM files")
    parser.add_argument("--outdir", default=None, help="Output directory (default: current directory)")
    parser.add_argument("--curve", default=None, choices=CURVE_NAMES, help="Elliptic curve (default P-256)")
    parser.add_argument(
        "--random-serials",
        action="store_true",
        default=None,
        help="Use random serial numbers instead of the fixed serial 1",
    )
    parser.add_argument("--env-file", default=None, help="Optional .env file with ECPKI_* settings")
    args = parser.parse_args(argv)

    try:
        config = load_config(
            args.env_file,
            output_dir=args.outdir,
            curve=args.curve,
            random_serials=args.random_serials,
        )
    except (FileNotFoundError, ValidationError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    result = run_bootstrap(config)
    if not result.ok:
        failure = result.failure
        print(f"Bootstrap aborted at step {failure.name!r}", file=sys.stderr)
        return 1

    print(f"Root CN: {get_common_name(result.root_certificate)}")
    print(f"Root SHA-256 fingerprint: {cert_fingerprint_hex(result.root_certificate)}")
    print(f"Leaf CN: {get_common_name(result.leaf_certificate)}")
    print(f"Leaf SHA-256 fingerprint: {cert_fingerprint_hex(result.leaf_certificate)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
