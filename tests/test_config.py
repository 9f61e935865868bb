"""
Tests for the pydantic models and environment-driven configuration.
"""
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from pydantic import ValidationError

from ecpki.common.config import load_config
from ecpki.common.models import (
    LEAF_TEMPLATE,
    ROOT_TEMPLATE,
    BootstrapConfig,
    CertificateTemplate,
    DistinguishedName,
)


def clean_env():
    return {k: v for k, v in os.environ.items() if not k.startswith("ECPKI_")}


class TestModels(unittest.TestCase):
    """Test cases for names, templates and the run config."""

    def test_defaults(self):
        config = BootstrapConfig()
        self.assertEqual(config.curve, "P-256")
        self.assertEqual(config.output_dir, Path("."))
        self.assertFalse(config.random_serials)
        self.assertEqual(config.root, ROOT_TEMPLATE)
        self.assertEqual(config.leaf, LEAF_TEMPLATE)

    def test_reference_templates(self):
        self.assertEqual(ROOT_TEMPLATE.validity_years, 5)
        self.assertEqual(LEAF_TEMPLATE.validity_years, 2)
        self.assertEqual(ROOT_TEMPLATE.key_usage, frozenset({"key_encipherment"}))
        self.assertEqual(ROOT_TEMPLATE.extended_key_usage, ("any",))
        self.assertTrue(ROOT_TEMPLATE.is_ca)
        self.assertFalse(LEAF_TEMPLATE.is_ca)

    def test_country_is_normalised(self):
        self.assertEqual(DistinguishedName(common_name="x", country="gb").country, "GB")

    def test_country_must_be_two_letters(self):
        with self.assertRaises(ValidationError):
            DistinguishedName(common_name="x", country="Country")

    def test_common_name_required(self):
        with self.assertRaises(ValidationError):
            DistinguishedName(common_name="   ")

    def test_unknown_key_usage(self):
        with self.assertRaises(ValidationError):
            CertificateTemplate(subject=ROOT_TEMPLATE.subject, validity_years=1, key_usage={"teleport"})

    def test_unknown_extended_key_usage(self):
        with self.assertRaises(ValidationError):
            CertificateTemplate(subject=ROOT_TEMPLATE.subject, validity_years=1, extended_key_usage=("web",))

    def test_serial_and_validity_bounds(self):
        with self.assertRaises(ValidationError):
            CertificateTemplate(subject=ROOT_TEMPLATE.subject, validity_years=1, serial_number=0)
        with self.assertRaises(ValidationError):
            CertificateTemplate(subject=ROOT_TEMPLATE.subject, validity_years=0)

    def test_unsupported_curve(self):
        with self.assertRaises(ValidationError):
            BootstrapConfig(curve="P-192")

    def test_models_are_frozen(self):
        with self.assertRaises(ValidationError):
            ROOT_TEMPLATE.validity_years = 10

    def test_extra_fields_rejected(self):
        with self.assertRaises(ValidationError):
            BootstrapConfig(colour="blue")


class TestLoadConfig(unittest.TestCase):
    """Test cases for load_config."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.empty_env = os.path.join(self.tmp.name, "empty.env")
        open(self.empty_env, "w").close()

    def tearDown(self):
        self.tmp.cleanup()

    def test_environment_values(self):
        env = clean_env()
        env.update({"ECPKI_OUTPUT_DIR": "/tmp/pki", "ECPKI_CURVE": "p-384", "ECPKI_RANDOM_SERIALS": "Yes"})
        with patch.dict(os.environ, env, clear=True):
            config = load_config(self.empty_env)
        self.assertEqual(config.output_dir, Path("/tmp/pki"))
        self.assertEqual(config.curve, "P-384")
        self.assertTrue(config.random_serials)

    def test_overrides_win(self):
        env = clean_env()
        env.update({"ECPKI_OUTPUT_DIR": "/tmp/pki", "ECPKI_CURVE": "P-384"})
        with patch.dict(os.environ, env, clear=True):
            config = load_config(self.empty_env, output_dir="certs", curve=None)
        self.assertEqual(config.output_dir, Path("certs"))
        self.assertEqual(config.curve, "P-384")

    def test_dotenv_file(self):
        env_file = os.path.join(self.tmp.name, ".env")
        with open(env_file, "w") as f:
            f.write("ECPKI_CURVE=P-521\nECPKI_RANDOM_SERIALS=false\n")
        with patch.dict(os.environ, clean_env(), clear=True):
            config = load_config(env_file)
        self.assertEqual(config.curve, "P-521")
        self.assertFalse(config.random_serials)

    def test_dotenv_in_working_directory(self):
        with open(os.path.join(self.tmp.name, ".env"), "w") as f:
            f.write("ECPKI_CURVE=P-384\nECPKI_OUTPUT_DIR=out\n")
        cwd = os.getcwd()
        os.chdir(self.tmp.name)
        try:
            with patch.dict(os.environ, clean_env(), clear=True):
                config = load_config()
        finally:
            os.chdir(cwd)
        self.assertEqual(config.curve, "P-384")
        self.assertEqual(config.output_dir, Path("out"))

    def test_missing_env_file(self):
        with self.assertRaises(FileNotFoundError):
            load_config(os.path.join(self.tmp.name, "absent.env"))

    def test_defaults_without_environment(self):
        with patch.dict(os.environ, clean_env(), clear=True):
            config = load_config(self.empty_env)
        self.assertEqual(config, BootstrapConfig())

    def test_invalid_environment_curve(self):
        env = clean_env()
        env["ECPKI_CURVE"] = "ed25519"
        with patch.dict(os.environ, env, clear=True):
            with self.assertRaises(ValidationError):
                load_config(self.empty_env)


if __name__ == "__main__":
    unittest.main()
