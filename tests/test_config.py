import pathlib
import sys
from decimal import Decimal

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))

from floorpos.config import get_settings, reset_settings  # noqa: E402


def test_defaults_from_config_json():
    reset_settings()
    settings = get_settings()
    assert settings.tax_rate == Decimal("0.05")
    assert settings.order_code_prefix == "ORD"
    assert settings.database_url == "sqlite://"


def test_environment_overrides_json(monkeypatch):
    monkeypatch.setenv("TAX_RATE", "0.18")
    monkeypatch.setenv("ORDER_CODE_PREFIX", "KOT")
    reset_settings()
    try:
        settings = get_settings()
        assert settings.tax_rate == Decimal("0.18")
        assert settings.order_code_prefix == "KOT"
    finally:
        monkeypatch.undo()
        reset_settings()
