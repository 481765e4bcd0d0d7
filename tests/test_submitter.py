"""
Tests for TransactionSubmitter.
"""
from unittest.mock import MagicMock

import pytest
from web3.exceptions import ContractLogicError

from flowdeploy import submitter as submitter_module
from flowdeploy.exceptions import ConfirmationTimeout, SubmissionRejected
from flowdeploy.models import ReceiptStatus, TransactionIntent
from flowdeploy.submitter import TransactionSubmitter
from tests.test_helpers import OTHER_ACCOUNT, RECEIVER, FakeClock


def _intent(signer, **kwargs):
    return TransactionIntent(to=RECEIVER, data="0x1234", from_address=signer.address, **kwargs)


def test_submit_success(submitter, signer, chain):
    receipt = submitter.submit(_intent(signer))

    assert receipt.status == ReceiptStatus.SUCCESS
    assert receipt.succeeded
    assert receipt.block_number == 100
    assert receipt.gas_used == 50_000
    assert receipt.transaction_hash.startswith("0x")
    assert chain.submissions == 1


def test_reverted_receipt_is_returned(submitter, signer, chain):
    chain.revert_on = {0}

    receipt = submitter.submit(_intent(signer))

    assert receipt.status == ReceiptStatus.REVERTED
    assert not receipt.succeeded


def test_nonce_from_pending_count(submitter, signer, chain):
    submitter.submit(_intent(signer))
    submitter.submit(_intent(signer))

    calls = chain.eth.get_transaction_count.call_args_list
    assert [c[0] for c in calls] == [(signer.address, "pending"), (signer.address, "pending")]


def test_explicit_nonce_and_gas_are_kept(submitter, signer, chain):
    tx = submitter._prepare(_intent(signer, nonce=7, gas_limit=21_000))

    assert tx["nonce"] == 7
    assert tx["gas"] == 21_000
    chain.eth.get_transaction_count.assert_not_called()
    chain.eth.estimate_gas.assert_not_called()


def test_gas_estimate_is_buffered(submitter, signer):
    tx = submitter._prepare(_intent(signer))

    assert tx["gas"] == 120_000
    assert tx["gasPrice"] == 1_000_000_000
    assert tx["chainId"] == 80001
    assert tx["to"] == RECEIVER


def test_contract_creation_has_no_recipient(submitter, signer):
    intent = TransactionIntent(data="0x6080", from_address=signer.address)
    assert "to" not in submitter._prepare(intent)


def test_estimation_revert_is_rejected(submitter, signer, chain):
    chain.eth.estimate_gas.side_effect = ContractLogicError("execution reverted: flow exists")

    with pytest.raises(SubmissionRejected, match="flow exists"):
        submitter.submit(_intent(signer))
    assert chain.submissions == 0


def test_estimation_failure_uses_default_gas(submitter, signer, chain):
    chain.eth.estimate_gas.side_effect = ConnectionError("node hiccup")

    tx = submitter._prepare(_intent(signer))

    assert tx["gas"] == submitter.default_gas


def test_broadcast_rejection(submitter, signer, chain):
    chain.reject_with = ValueError({"code": -32000, "message": "insufficient funds for gas"})

    with pytest.raises(SubmissionRejected) as exc_info:
        submitter.submit(_intent(signer))

    assert "insufficient funds" in exc_info.value.reason
    assert chain.submissions == 0


def test_prepare_failure_is_rejected(submitter, signer, chain):
    chain.eth.get_transaction_count.side_effect = ConnectionError("connection refused")

    with pytest.raises(SubmissionRejected, match="connection refused"):
        submitter.submit(_intent(signer))


def test_intent_from_another_account_is_rejected(submitter, chain):
    intent = TransactionIntent(to=RECEIVER, data="0x", from_address=OTHER_ACCOUNT)

    with pytest.raises(SubmissionRejected, match="signing account"):
        submitter.submit(intent)
    assert chain.submissions == 0


def test_signing_failure_is_rejected(chain):
    signer = MagicMock()
    signer.address = OTHER_ACCOUNT
    signer.sign_transaction.side_effect = RuntimeError("hardware wallet locked")
    submitter = TransactionSubmitter(chain.w3, signer)

    with pytest.raises(SubmissionRejected, match="hardware wallet locked"):
        submitter.submit(TransactionIntent(to=RECEIVER, data="0x", from_address=OTHER_ACCOUNT))


def test_confirmation_timeout(submitter, signer, chain, monkeypatch):
    clock = FakeClock()
    monkeypatch.setattr(submitter_module, "time", clock)
    chain.never_mine = True

    with pytest.raises(ConfirmationTimeout) as exc_info:
        submitter.submit(_intent(signer))

    assert exc_info.value.transaction_hash.startswith("0x")
    assert exc_info.value.timeout == 30
    # Broadcast happened; only the confirmation is missing
    assert chain.submissions == 1
    assert clock.now == pytest.approx(30)
    assert all(s <= submitter.poll_interval for s in clock.sleeps)


def test_wait_again_after_timeout(submitter, signer, chain, monkeypatch):
    monkeypatch.setattr(submitter_module, "time", FakeClock())
    chain.never_mine = True
    with pytest.raises(ConfirmationTimeout) as exc_info:
        submitter.submit(_intent(signer))

    chain.never_mine = False
    receipt = submitter.wait_for_receipt(exc_info.value.transaction_hash)

    assert receipt.transaction_hash == exc_info.value.transaction_hash


def test_transient_poll_errors_are_tolerated(submitter, signer, chain, monkeypatch):
    monkeypatch.setattr(submitter_module, "time", FakeClock())
    real_receipt = chain.eth.get_transaction_receipt.side_effect
    failures = [OSError("connection reset"), ValueError("bad gateway")]

    def flaky(tx_hash):
        if failures:
            raise failures.pop(0)
        return real_receipt(tx_hash)

    chain.eth.get_transaction_receipt.side_effect = flaky

    receipt = submitter.submit(_intent(signer))

    assert receipt.succeeded
    assert chain.eth.get_transaction_receipt.call_count == 3


def test_timeout_must_be_positive(chain, signer):
    with pytest.raises(ValueError):
        TransactionSubmitter(chain.w3, signer, timeout=0)
