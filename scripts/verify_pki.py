"""Verify the PEM files written by gen_pki.py (self-signed root, leaf chain).

Example:
	python scripts/verify_pki.py certs
"""

import sys

from ecpki.verify import main


if __name__ == "__main__":
	sys.exit(main())
