"""Small helper utilities used by the crypto and storage layers.

Provided:
- now_utc() -> datetime: current UTC time truncated to whole seconds
- add_years(dt, years) -> datetime: calendar-year arithmetic
- b64e(b: bytes) -> str: base64 encode bytes to ASCII string
- b64d(s: str) -> bytes: base64 decode ASCII string to bytes

Keep these helpers tiny and dependency-free so tests and early code
can run without bringing in heavy crypto libraries.
"""

import base64
import binascii
from datetime import datetime, timezone


def now_utc() -> datetime:
	"""Return the current UTC time without microseconds.

	X.509 validity times carry whole seconds only, so truncating here keeps
	the value we compute equal to the value read back from the DER.
	"""
	return datetime.now(timezone.utc).replace(microsecond=0)


def add_years(dt: datetime, years: int) -> datetime:
	"""Add calendar years to `dt`.

	29 February rolls forward to 1 March when the target year is not a
	leap year.
	"""
	try:
		return dt.replace(year=dt.year + years)
	except ValueError:
		return dt.replace(year=dt.year + years, month=3, day=1)


def b64e(b: bytes) -> str:
	"""Base64-encode bytes and return an ASCII string."""
	return base64.b64encode(b).decode("ascii")


def b64d(s: str) -> bytes:
	"""Decode a base64 ASCII string into bytes. Raises ValueError on bad input."""
	try:
		return base64.b64decode(s.encode("ascii"), validate=True)
	except (binascii.Error, UnicodeEncodeError) as e:
		raise ValueError(f"invalid base64 payload: {e}") from e

