"""
Pytest configuration and fixtures for the airdrop commitment builder tests.
"""

import json
import logging
from pathlib import Path

import base58
import pytest

from crypto.address import encode_segwit_address
from crypto.keys import KeyDeriver
from registry.manager import LeafRegistry


def p2pkh_address(seed: int, version: int = 0x00) -> str:
    """Deterministic valid base58check P2PKH address."""
    payload = bytes([version]) + bytes([seed % 256]) * 19 + bytes([seed // 256 % 256])
    return base58.b58encode_check(payload).decode('ascii')


def p2wpkh_address(seed: int, hrp: str = "bc") -> str:
    """Deterministic valid bech32 P2WPKH address."""
    program = bytes([seed % 256]) * 19 + bytes([seed // 256 % 256])
    return encode_segwit_address(hrp, 0, program)


def write_inputs(input_dir: Path, sponsors=(), creators=(), foss=(), naming=(), faucet=()) -> Path:
    """Write the five category files into ``input_dir``."""
    input_dir.mkdir(parents=True, exist_ok=True)
    files = {
        "sponsors.json": sponsors,
        "creators.json": creators,
        "foss.json": foss,
        "naming.json": naming,
        "faucet.json": faucet,
    }
    for name, records in files.items():
        (input_dir / name).write_text(json.dumps(list(records)))
    return input_dir


@pytest.fixture
def deriver():
    """Mainnet key deriver."""
    return KeyDeriver("mainnet")


@pytest.fixture
def leaf_registry(deriver):
    """Fresh leaf registry with a unit reward of 10."""
    return LeafRegistry(deriver=deriver, unit_reward=10)


@pytest.fixture
def sample_inputs():
    """Records for every category; totals 100/50/10/5 external, faucet 100 shares."""
    return {
        "sponsors": [
            {"address": p2pkh_address(1), "value": 60},
            {"address": p2wpkh_address(2), "value": 40},
        ],
        "creators": [
            {"address": p2pkh_address(3), "value": 50},
        ],
        "foss": [
            {"address": p2wpkh_address(4), "value": 7},
            {"address": p2pkh_address(5), "value": 3},
        ],
        "naming": [
            {"address": p2pkh_address(6), "value": 5},
        ],
        "faucet": [
            {"address": p2pkh_address(7), "shares": 60},
            {"address": p2wpkh_address(8), "shares": 40},
        ],
    }


@pytest.fixture
def input_dir(tmp_path, sample_inputs):
    """Directory holding the sample category files."""
    return write_inputs(tmp_path / "inputs", **sample_inputs)


@pytest.fixture(autouse=True)
def reset_cli_logging():
    """Drop handlers installed by CLI invocations so they never outlive a test."""
    yield
    for name in ('airdrop-cli', 'crypto', 'registry'):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )


def pytest_collection_modifyitems(config, items):
    """Add markers based on test file paths."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
