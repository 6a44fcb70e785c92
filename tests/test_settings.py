import logging

import pytest

from household_finance.logging_setup import _parse_level
from household_finance.settings import get_config_value, load_config


def test_cpf_settings_ship_with_package():
    assert get_config_value('cpf', 'ordinary_wage_ceiling') == 8000
    assert get_config_value('cpf', 'annual_wage_ceiling') == 102000
    assert load_config('cpf')['contribution_bands'][-1]['max_age'] is None


def test_missing_values_fall_back_to_default():
    assert get_config_value('cpf', 'no_such_key', default=1) == 1
    assert get_config_value('missing_file', 'x') is None
    with pytest.raises(FileNotFoundError):
        load_config('missing_file')


def test_parse_level(monkeypatch):
    monkeypatch.delenv('HOUSEHOLD_FINANCE_LOG_LEVEL', raising=False)
    assert _parse_level('debug') == logging.DEBUG
    assert _parse_level(' warning ') == logging.WARNING
    assert _parse_level('15') == 15
    assert _parse_level(None) == logging.INFO

    monkeypatch.setenv('HOUSEHOLD_FINANCE_LOG_LEVEL', 'ERROR')
    assert _parse_level(None) == logging.ERROR
    assert _parse_level('nonsense') == logging.ERROR
