"""
Tests for the offline verifier of a bootstrapped directory.
"""
import io
import shutil
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

from ecpki.bootstrap import run_bootstrap
from ecpki.common.errors import PersistenceFailure
from ecpki.common.models import BootstrapConfig
from ecpki.verify import main, verify_directory


class TestVerify(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name) / "pki"
        result = run_bootstrap(BootstrapConfig(output_dir=self.dir), verbose=False)
        self.assertTrue(result.ok)

    def tearDown(self):
        self.tmp.cleanup()

    def call_main(self, argv):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = main(argv)
        return code, out.getvalue(), err.getvalue()

    def test_fresh_directory_passes(self):
        checks = verify_directory(self.dir)
        self.assertEqual(len(checks), 6)
        self.assertTrue(all(passed for _, passed in checks))

        code, out, _ = self.call_main([str(self.dir)])
        self.assertEqual(code, 0)
        self.assertIn("RESULT: PASS", out)

    def test_leaf_from_another_root_fails(self):
        other = Path(self.tmp.name) / "other"
        run_bootstrap(BootstrapConfig(output_dir=other), verbose=False)
        shutil.copy(other / "leaf_cert_ecdsa.pem", self.dir / "leaf_cert_ecdsa.pem")

        checks = dict(verify_directory(self.dir))
        self.assertFalse(checks["leaf 'Leaf Common Name' is signed by root"])
        self.assertFalse(checks["leaf certificate embeds leaf public key"])
        self.assertTrue(checks["root 'Root Common Name' is self-signed"])

        code, out, _ = self.call_main([str(self.dir)])
        self.assertEqual(code, 1)
        self.assertIn("RESULT: FAIL", out)

    def test_missing_file(self):
        (self.dir / "root_cert_ecdsa.pem").unlink()
        with self.assertRaises(PersistenceFailure):
            verify_directory(self.dir)

        code, _, err = self.call_main([str(self.dir)])
        self.assertEqual(code, 1)
        self.assertIn("[FAIL]", err)


if __name__ == "__main__":
    unittest.main()
