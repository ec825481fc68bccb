"""
Tests for YAML configuration loading.
"""

import pytest
import yaml

from ledger_config import DEFAULT_CONFIG_PATH, get_active_config
from ledger_config.loader import compute_checksum, load_yaml_file, parse_config
from ledger_kernel.exceptions import InvalidCurrencyError
from ledger_modules.billing.config import BillingConfig
from ledger_modules.vouchers.config import VoucherConfig
from ledger_modules.vouchers.models import VoucherType


def _write(tmp_path, text):
    path = tmp_path / "ledger.yaml"
    path.write_text(text)
    return path


class TestDefaultConfig:
    """Tests for the packaged default configuration."""

    def test_default_set_loads(self):
        """The packaged set loads with the documented defaults."""
        config = get_active_config()

        assert config.config_id == "default"
        assert config.base_currency == "USD"
        assert config.billing.allow_overpayment is True
        assert config.vouchers.enabled_types == ("PAYMENT", "RECEIPT", "DEPOSIT")
        assert config.logging.level == "INFO"

    def test_trace_logged(self, captured_logs):
        """Loading emits LEDGER_CONFIG_TRACE with the checksum."""
        config = get_active_config(DEFAULT_CONFIG_PATH)

        trace = next(r for r in captured_logs() if r["message"] == "LEDGER_CONFIG_TRACE")
        assert trace["config_id"] == "default"
        assert trace["checksum"] == config.checksum
        assert trace["enabled_voucher_types"] == ["PAYMENT", "RECEIPT", "DEPOSIT"]

    def test_settings_feed_module_configs(self):
        """Module config classes are built from the loaded settings."""
        config = get_active_config()

        vouchers = VoucherConfig.from_settings(config.vouchers)
        billing = BillingConfig.from_settings(config.billing)

        assert vouchers.is_enabled(VoucherType.PAYMENT)
        assert not vouchers.is_enabled(VoucherType.JOURNAL)
        assert vouchers.number_prefixes[VoucherType.RECEIPT] == "RV"
        assert billing.invoice_number_prefix == "INV"


class TestChecksum:
    """Tests for compute_checksum."""

    def test_key_order_does_not_matter(self):
        """Equal documents hash equally."""
        assert compute_checksum({"a": 1, "b": [1, 2]}) == compute_checksum({"b": [1, 2], "a": 1})

    def test_any_change_changes_hash(self):
        """Different documents hash differently."""
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})


class TestCustomFiles:
    """Tests for loading and validating custom files."""

    def test_overrides(self, tmp_path):
        """Sections override defaults; omitted keys keep them."""
        path = _write(tmp_path, """
config_id: kampala
version: 3
base_currency: ugx
billing:
  allow_overpayment: false
vouchers:
  enabled_types: [PAYMENT, CONTRA]
  number_prefixes:
    CONTRA: TRF
logging:
  level: debug
""")
        config = get_active_config(path)

        assert config.version == 3
        assert config.base_currency == "UGX"
        assert config.billing.allow_overpayment is False
        assert config.billing.bill_number_prefix == "BILL"
        assert config.vouchers.number_prefixes["CONTRA"] == "TRF"
        assert config.vouchers.number_prefixes["PAYMENT"] == "PV"
        assert config.logging.level == "DEBUG"

    def test_missing_config_id(self, tmp_path):
        """config_id is required."""
        with pytest.raises(KeyError):
            get_active_config(_write(tmp_path, "base_currency: USD\n"))

    def test_missing_base_currency(self):
        """base_currency is required."""
        with pytest.raises(KeyError):
            parse_config({"config_id": "x"})

    def test_unknown_currency(self):
        """base_currency must be an ISO code."""
        with pytest.raises(InvalidCurrencyError):
            parse_config({"config_id": "x", "base_currency": "XXY"})

    @pytest.mark.parametrize(
        "section",
        [
            {"billing": {"allow_overpayment": "yes"}},
            {"billing": {"invoice_number_prefix": ""}},
            {"vouchers": {"enabled_types": ["PAYMENT", "REFUND"]}},
            {"vouchers": {"enabled_types": []}},
            {"vouchers": {"number_prefixes": {"REFUND": "RF"}}},
            {"logging": {"level": "LOUD"}},
            {"billing": ["not", "a", "mapping"]},
        ],
    )
    def test_invalid_values(self, section):
        """Bad values raise ValueError."""
        with pytest.raises(ValueError):
            parse_config({"config_id": "x", "base_currency": "USD", **section})

    def test_non_mapping_document(self, tmp_path):
        """The top level must be a mapping."""
        with pytest.raises(ValueError):
            load_yaml_file(_write(tmp_path, "- just\n- a list\n"))

    def test_malformed_yaml(self, tmp_path):
        """YAML syntax errors propagate."""
        with pytest.raises(yaml.YAMLError):
            load_yaml_file(_write(tmp_path, "config_id: [unclosed\n"))

    def test_missing_file(self, tmp_path):
        """A missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")
