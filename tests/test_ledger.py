"""
Tests for the deployment ledger and argument fingerprints.
"""
import json
import os
from unittest.mock import patch

import pytest
from hypothesis import given, settings, strategies as st

from flowdeploy.exceptions import LedgerError
from flowdeploy.ledger import DeploymentLedger, fingerprint
from flowdeploy.models import DeploymentRecord, ref
from tests.test_helpers import FDAIX, RECEIVER


def _record(name="TokenMock", network="mumbai", address=RECEIVER, fp="aa", block=1):
    return DeploymentRecord(
        name=name,
        network=network,
        address=address,
        constructor_args_fingerprint=fp,
        block_number=block,
        timestamp=1700000000,
    )


def test_lookup_missing_ledger_file(ledger):
    assert not ledger.path.exists()
    assert ledger.lookup("TokenMock", "mumbai") is None
    assert ledger.records("mumbai") == []


def test_commit_and_lookup(ledger):
    ledger.commit(_record())

    record = ledger.lookup("TokenMock", "mumbai")
    assert record.address == RECEIVER
    assert record.constructor_args_fingerprint == "aa"
    assert ledger.lookup("TokenMock", "matic") is None


def test_file_format(ledger):
    ledger.commit(_record())

    with open(ledger.path) as f:
        data = json.load(f)
    entry = data["deployments"]["mumbai"]["TokenMock"]
    assert data["version"] == 1
    assert entry["constructorArgsFingerprint"] == "aa"
    assert entry["blockNumber"] == 1
    assert entry["network"] == "mumbai"


def test_commit_replaces_record_for_same_key(ledger):
    ledger.commit(_record(fp="old", block=1))
    ledger.commit(_record(name="Other", fp="other"))
    ledger.commit(_record(fp="new", block=2))

    record = ledger.lookup("TokenMock", "mumbai")
    assert record.constructor_args_fingerprint == "new"
    assert record.block_number == 2
    assert [r.name for r in ledger.records("mumbai")] == ["Other", "TokenMock"]


def test_failed_write_keeps_previous_record(ledger):
    ledger.commit(_record(fp="old"))

    with patch("flowdeploy.ledger.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(LedgerError):
            ledger.commit(_record(fp="new"))

    assert ledger.lookup("TokenMock", "mumbai").constructor_args_fingerprint == "old"
    leftovers = [name for name in os.listdir(ledger.path.parent) if name.endswith(".tmp")]
    assert leftovers == []


def test_corrupt_ledger_is_an_error(ledger):
    ledger.path.parent.mkdir(parents=True)
    ledger.path.write_text("{not json")

    with pytest.raises(LedgerError):
        ledger.lookup("TokenMock", "mumbai")


def test_default_path_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("FLOWDEPLOY_LEDGER_PATH", str(tmp_path / "custom.json"))
    assert DeploymentLedger().path == tmp_path / "custom.json"


def test_bytes_arguments_are_stored_as_hex(ledger):
    record = _record().model_copy(update={"constructor_args": [b"\x01\x02", "TCF"]})
    ledger.commit(record)

    assert ledger.lookup("TokenMock", "mumbai").constructor_args == ["0x0102", "TCF"]


def test_fingerprint_is_deterministic():
    args = [RECEIVER, "Tradeable Cashflow", "TCF", 5]
    assert fingerprint(args) == fingerprint(list(args))
    assert len(fingerprint(args)) == 64


def test_fingerprint_is_order_sensitive():
    assert fingerprint(["A", "B"]) != fingerprint(["B", "A"])


def test_fingerprint_is_type_sensitive():
    assert fingerprint([1]) != fingerprint(["1"])
    assert fingerprint([True]) != fingerprint([1])
    assert fingerprint([["a"]]) != fingerprint(["a"])


def test_fingerprint_ignores_address_case():
    upper = "0x" + FDAIX[2:].upper()
    assert fingerprint([FDAIX]) == fingerprint([upper])
    assert fingerprint([FDAIX]) != fingerprint([RECEIVER])


def test_fingerprint_rejects_placeholders():
    with pytest.raises(ValueError):
        fingerprint([ref("TokenMock")])


scalar = st.one_of(st.integers(), st.text(max_size=20), st.booleans(), st.binary(max_size=8))


@settings(max_examples=100)
@given(
    args=st.lists(scalar, min_size=1, max_size=6),
    index=st.integers(min_value=0, max_value=5),
    replacement=scalar,
)
def test_changing_one_argument_changes_fingerprint(args, index, replacement):
    index = index % len(args)
    changed = list(args)
    changed[index] = replacement
    if type(changed[index]) is type(args[index]) and changed[index] == args[index]:
        return
    assert fingerprint(changed) != fingerprint(args)


def test_bare_hex_string_is_not_an_address():
    assert fingerprint([FDAIX[2:]]) != fingerprint([FDAIX])
    assert fingerprint([FDAIX[2:]]) == fingerprint([FDAIX[2:]])
