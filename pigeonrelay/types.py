"""Data types exchanged between the relayer, the EVM chain and Paloma."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Union

from .crypto import keccak256, public_key_to_address, recover_public_key, sign_hash

LEGACY_TX = 0
DYNAMIC_FEE_TX = 2


def _rlp_length_prefix(length: int, offset: int) -> bytes:
    if length < 56:
        return bytes([offset + length])
    encoded = length.to_bytes((length.bit_length() + 7) // 8, "big")
    return bytes([offset + 55 + len(encoded)]) + encoded


def _rlp(item: Any) -> bytes:
    if isinstance(item, int):
        if item < 0:
            raise ValueError("cannot encode negative integers")
        item = item.to_bytes((item.bit_length() + 7) // 8, "big")
    if isinstance(item, (bytes, bytearray)):
        if len(item) == 1 and item[0] < 0x80:
            return bytes(item)
        return _rlp_length_prefix(len(item), 0x80) + bytes(item)
    if isinstance(item, (list, tuple)):
        payload = b"".join(_rlp(element) for element in item)
        return _rlp_length_prefix(len(payload), 0xC0) + payload
    raise TypeError(f"cannot encode {type(item).__name__}")


@dataclass(frozen=True)
class Log:
    address: bytes = b""
    topics: tuple[bytes, ...] = ()
    data: bytes = b""
    block_number: int = 0
    tx_hash: bytes = b""


@dataclass(frozen=True)
class FilterQuery:
    block_hash: bytes | None = None
    from_block: int | None = None
    to_block: int | None = None
    addresses: tuple[bytes, ...] = ()
    topics: tuple[tuple[bytes, ...], ...] = ()

    def replace(self, **kwargs: Any) -> "FilterQuery":
        """Return a copy with the given fields changed."""
        return dataclasses.replace(self, **kwargs)


@dataclass(frozen=True)
class Header:
    number: int = 0
    time: int = 0


@dataclass(frozen=True)
class Transaction:
    """An EVM transaction, either legacy (type 0) or dynamic fee (type 2)."""

    nonce: int = 0
    to: bytes | None = None
    value: int = 0
    gas: int = 0
    data: bytes = b""
    chain_id: int = 0
    tx_type: int = LEGACY_TX
    gas_price: int = 0
    gas_tip_cap: int = 0
    gas_fee_cap: int = 0
    v: int = 0
    r: int = 0
    s: int = 0

    def __post_init__(self) -> None:
        if self.tx_type not in (LEGACY_TX, DYNAMIC_FEE_TX):
            raise ValueError(f"unsupported transaction type: {self.tx_type}")

    def _fields(self) -> list[Any]:
        to = self.to or b""
        if self.tx_type == DYNAMIC_FEE_TX:
            return [
                self.chain_id, self.nonce, self.gas_tip_cap, self.gas_fee_cap,
                self.gas, to, self.value, self.data, [],
            ]
        return [self.nonce, self.gas_price, self.gas, to, self.value, self.data]

    def signing_hash(self) -> bytes:
        """Return the digest that the sender signs."""
        if self.tx_type == DYNAMIC_FEE_TX:
            return keccak256(b"\x02", _rlp(self._fields()))
        if self.chain_id:
            return keccak256(_rlp(self._fields() + [self.chain_id, 0, 0]))
        return keccak256(_rlp(self._fields()))

    def encode(self) -> bytes:
        """Return the binary (wire) encoding of the transaction."""
        payload = _rlp(self._fields() + [self.v, self.r, self.s])
        if self.tx_type == DYNAMIC_FEE_TX:
            return b"\x02" + payload
        return payload

    @property
    def hash(self) -> bytes:
        return keccak256(self.encode())

    @property
    def cost(self) -> int:
        price = self.gas_fee_cap if self.tx_type == DYNAMIC_FEE_TX else self.gas_price
        return self.gas * price + self.value

    def sign(self, private_key: int) -> "Transaction":
        """Return a signed copy of the transaction."""
        signature = sign_hash(self.signing_hash(), private_key)
        recovery_id = signature[64]
        if self.tx_type == DYNAMIC_FEE_TX:
            v = recovery_id
        elif self.chain_id:
            v = recovery_id + 35 + 2 * self.chain_id
        else:
            v = recovery_id + 27
        return dataclasses.replace(
            self,
            v=v,
            r=int.from_bytes(signature[:32], "big"),
            s=int.from_bytes(signature[32:64], "big"),
        )

    def _recovery_id(self) -> int:
        if self.tx_type == DYNAMIC_FEE_TX:
            recovery_id = self.v
        elif self.v in (27, 28):
            recovery_id = self.v - 27
        else:
            recovery_id = self.v - 35 - 2 * self.chain_id
        if recovery_id not in (0, 1):
            raise ValueError("invalid transaction signature")
        return recovery_id

    def sender(self) -> bytes:
        """Return the 20-byte address that signed the transaction."""
        if not self.r or not self.s:
            raise ValueError("transaction is not signed")
        signature = (
            self.r.to_bytes(32, "big")
            + self.s.to_bytes(32, "big")
            + bytes([self._recovery_id()])
        )
        return public_key_to_address(recover_public_key(self.signing_hash(), signature))


@dataclass
class ValidatorSignature:
    signed_by_address: str
    signature: bytes
    public_key: bytes = b""


@dataclass
class Valset:
    validators: list[str] = field(default_factory=list)
    powers: list[int] = field(default_factory=list)
    valset_id: int = 0


@dataclass
class SubmitLogicCall:
    hex_contract_address: str = ""
    abi: bytes = b""
    payload: bytes = b""
    deadline: int = 0
    enforce_mev_relay: bool = False


@dataclass
class UpdateValset:
    valset: Valset = field(default_factory=Valset)


@dataclass
class UploadSmartContract:
    bytecode: bytes = b""
    abi: str = ""
    constructor_input: bytes = b""


@dataclass
class Message:
    action: Union[SubmitLogicCall, UpdateValset, UploadSmartContract, None] = None


@dataclass
class ValidatorBalancesAttestation:
    from_block_time: datetime
    hex_addresses: list[str] = field(default_factory=list)


@dataclass
class ValidatorBalancesAttestationRes:
    block_height: int = 0
    balances: list[str] = field(default_factory=list)


@dataclass
class TxExecutedProof:
    serialized_tx: bytes = b""


@dataclass
class SmartContractExecutionErrorProof:
    error_message: str = ""


@dataclass
class MessageWithSignatures:
    id: int
    msg: Any = None
    bytes_to_sign: bytes = b""
    nonce: bytes = b""
    public_access_data: bytes = b""
    signatures: list[ValidatorSignature] = field(default_factory=list)


@dataclass
class Signature:
    v: int = 0
    r: int = 0
    s: int = 0


@dataclass
class CompassValset:
    validators: list[bytes] = field(default_factory=list)
    powers: list[int] = field(default_factory=list)
    valset_id: int = 0


@dataclass
class CompassConsensus:
    valset: CompassValset = field(default_factory=CompassValset)
    signatures: list[Signature] = field(default_factory=list)
    original_signatures: list[bytes] = field(default_factory=list)


@dataclass
class CompassLogicCallArgs:
    logic_contract_address: bytes
    payload: bytes


@dataclass
class CompassTokenSendArgs:
    receiver: list[bytes] = field(default_factory=list)
    amount: list[int] = field(default_factory=list)


@dataclass
class BatchTransaction:
    dest_address: str
    amount: int


@dataclass
class GravityBatchWithSignatures:
    batch_nonce: int
    token_contract: str = ""
    batch_timeout: int = 0
    transactions: list[BatchTransaction] = field(default_factory=list)
    bytes_to_sign: bytes = b""
    signatures: list[ValidatorSignature] = field(default_factory=list)


@dataclass
class BatchSendEvent:
    eth_block_height: int
    event_nonce: int
    batch_nonce: int
    token_contract: str


@dataclass
class SendToPalomaEvent:
    eth_block_height: int
    event_nonce: int
    amount: int
    ethereum_sender: str
    paloma_receiver: str
    token_contract: str


@dataclass
class BatchSendToEvmClaim:
    event_nonce: int
    eth_block_height: int
    batch_nonce: int
    token_contract: str
    chain_reference_id: str
    orchestrator: str


@dataclass
class SendToPalomaClaim:
    event_nonce: int
    eth_block_height: int
    token_contract: str
    amount: int
    ethereum_sender: str
    paloma_receiver: str
    chain_reference_id: str
    orchestrator: str