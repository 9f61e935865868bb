"""Create the root + leaf ECDSA PKI (keys and certificates as PEM files).

Writes root_private_ecdsa.pem, root_public_ecdsa.pem, root_cert_ecdsa.pem
and the leaf_* equivalents into the output directory (default: current
directory).

Example:
	python scripts/gen_pki.py --outdir certs --random-serials
"""

import sys

from ecpki.bootstrap import main


if __name__ == "__main__":
	sys.exit(main())
