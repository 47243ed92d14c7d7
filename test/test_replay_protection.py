import asyncio
from types import SimpleNamespace

import pytest
from eth_account import Account
from pydantic import SecretStr

from easy_amm.core.config import settings
from easy_amm.core.nonce_manager import NonceManager
from easy_amm.core.tx import PendingTransaction, TransactionManager, TransactionReverted

WALLET = "0x0000000000000000000000000000000000000AbC"


async def _value(value):
    return value


class DummyEth:
    def __init__(self, initial_nonce=7, receipt_status=1):
        self.initial_nonce = initial_nonce
        self.receipt_status = receipt_status
        self.count_calls = 0
        self.sent = []
        self.fail_next_send = False

    async def get_transaction_count(self, address, block_identifier="latest"):
        self.count_calls += 1
        await asyncio.sleep(0)
        return self.initial_nonce

    async def estimate_gas(self, tx):
        await asyncio.sleep(0)
        return 21000

    @property
    def gas_price(self):
        return _value(5)

    @property
    def chain_id(self):
        return _value(56)

    async def send_raw_transaction(self, raw):
        await asyncio.sleep(0)
        if self.fail_next_send:
            self.fail_next_send = False
            raise ConnectionError("node dropped the request")
        self.sent.append(raw)
        return raw

    async def wait_for_transaction_receipt(self, tx_hash, timeout=120):
        return {"status": self.receipt_status, "blockNumber": 1, "transactionHash": tx_hash}


class DummyW3:
    def __init__(self, **kwargs):
        self.eth = DummyEth(**kwargs)


class DummyAccount:
    address = WALLET

    def __init__(self):
        self.signed = []

    def sign_transaction(self, tx):
        self.signed.append(tx)
        return SimpleNamespace(raw_transaction=tx["nonce"].to_bytes(32, "big"))


@pytest.fixture
def w3():
    return DummyW3()


@pytest.fixture
def manager(w3, monkeypatch):
    monkeypatch.setattr(settings, "chain_id", None)
    return TransactionManager(w3, DummyAccount())


@pytest.mark.asyncio
async def test_concurrent_sends_get_contiguous_nonces_in_call_order(manager, w3):
    results = await asyncio.gather(*(manager.send_transaction({"to": "0x1"}) for _ in range(20)))

    assert [p.nonce for p in results] == list(range(7, 27))
    assert len({p.hash for p in results}) == 20
    # Counter is read from the node once, then kept in memory
    assert w3.eth.count_calls == 1
    assert manager.nonce_manager.peek() == 27


@pytest.mark.asyncio
async def test_nonce_manager_alone_serializes_first_fetch(w3):
    nm = NonceManager(w3, WALLET)
    nonces = await asyncio.gather(*(nm.next_nonce() for _ in range(5)))
    assert nonces == [7, 8, 9, 10, 11]
    assert w3.eth.count_calls == 1


@pytest.mark.asyncio
async def test_missing_fields_are_filled_before_signing(manager):
    await manager.send_transaction({"to": "0x1", "data": "0x"})
    signed = manager.account.signed[0]
    assert signed["from"] == WALLET
    assert signed["nonce"] == 7
    assert signed["chainId"] == 56
    assert signed["gas"] == 21000
    assert signed["gasPrice"] == 5


@pytest.mark.asyncio
async def test_caller_supplied_gas_fields_are_kept(manager):
    await manager.send_transaction({"to": "0x1", "gas": 99_000, "maxFeePerGas": 10, "maxPriorityFeePerGas": 1})
    signed = manager.account.signed[0]
    assert signed["gas"] == 99_000
    assert "gasPrice" not in signed


@pytest.mark.asyncio
async def test_caller_cannot_override_assigned_nonce(manager):
    await manager.send_transaction({"to": "0x1", "nonce": 0})
    assert manager.account.signed[0]["nonce"] == 7


@pytest.mark.asyncio
async def test_broadcast_failure_propagates_and_nonce_is_not_reused(manager, w3):
    w3.eth.fail_next_send = True
    with pytest.raises(ConnectionError):
        await manager.send_transaction({"to": "0x1"})
    pending = await manager.send_transaction({"to": "0x1"})
    assert pending.nonce == 8


@pytest.mark.asyncio
async def test_reset_rereads_from_node(w3):
    nm = NonceManager(w3, WALLET)
    assert await nm.next_nonce() == 7
    assert await nm.next_nonce() == 8
    nm.reset()
    w3.eth.initial_nonce = 12
    assert await nm.next_nonce() == 12
    assert w3.eth.count_calls == 2


@pytest.mark.asyncio
async def test_pending_transaction_wait_raises_on_revert():
    pending = PendingTransaction(DummyW3(receipt_status=0), "0xdead", 3)
    with pytest.raises(TransactionReverted) as exc:
        await pending.wait()
    assert exc.value.tx_hash == "0xdead"


@pytest.mark.asyncio
async def test_pending_transaction_wait_returns_receipt():
    receipt = await PendingTransaction(DummyW3(), "0xbeef", 3).wait(timeout=5)
    assert receipt["status"] == 1


def test_from_settings_uses_private_key(monkeypatch):
    key = "0x" + "11" * 32
    monkeypatch.setattr(settings, "EXECUTOR_PRIVATE_KEY", SecretStr(key))
    manager = TransactionManager.from_settings(DummyW3())
    assert manager.address == Account.from_key(key).address


def test_from_settings_derives_from_mnemonic(monkeypatch):
    monkeypatch.setattr(settings, "EXECUTOR_PRIVATE_KEY", None)
    monkeypatch.setattr(settings, "MNEMONIC", SecretStr("test test test test test test test test test test test junk"))
    monkeypatch.setattr(settings, "DERIVATION_PATH", "m/44'/60'/0'/0/0")
    manager = TransactionManager.from_settings(DummyW3())
    assert manager.address == "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"


def test_from_settings_without_secret_fails(monkeypatch):
    monkeypatch.setattr(settings, "EXECUTOR_PRIVATE_KEY", None)
    monkeypatch.setattr(settings, "MNEMONIC", None)
    with pytest.raises(ValueError):
        TransactionManager.from_settings(DummyW3())
