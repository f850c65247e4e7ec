"""Checking validator consensus and shaping it for the compass contract."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

from .crypto import (
    hex_to_address,
    keccak256,
    public_key_to_address,
    recover_public_key,
    to_checksum_address,
)
from .types import CompassConsensus, CompassValset, Signature, ValidatorSignature, Valset

_logger = logging.getLogger(__name__)

SIGNED_MESSAGE_PREFIX = b"\x19Ethereum Signed Message:\n32"


class _SignedEntity(Protocol):
    bytes_to_sign: bytes
    signatures: list[ValidatorSignature]


def transform_valset(valset: Valset) -> CompassValset:
    """Convert a Paloma valset into the form the compass contract expects."""
    return CompassValset(
        validators=[hex_to_address(validator) for validator in valset.validators],
        powers=[int(power) for power in valset.powers],
        valset_id=int(valset.valset_id),
    )


def build_compass_consensus(
    valset: Valset, signatures: Iterable[ValidatorSignature]
) -> CompassConsensus:
    """Line up signatures with the valset's validators.

    A validator without a signature gets an all-zero signature and an empty
    original signature.
    """
    by_signer = {sig.signed_by_address: sig for sig in signatures}
    consensus = CompassConsensus(valset=transform_valset(valset))
    for validator in valset.validators:
        sig = by_signer.get(validator)
        if sig is None:
            consensus.signatures.append(Signature(v=0, r=0, s=0))
            consensus.original_signatures.append(b"")
            continue
        raw = sig.signature
        consensus.signatures.append(
            Signature(
                v=raw[64] + 27,
                r=int.from_bytes(raw[:32], "big"),
                s=int.from_bytes(raw[32:64], "big"),
            )
        )
        consensus.original_signatures.append(raw)
    return consensus


def _recovered_address(digest: bytes, signature: bytes) -> str | None:
    try:
        public_key = recover_public_key(digest, signature)
        return to_checksum_address(public_key_to_address(public_key))
    except ValueError:
        return None


def is_consensus_reached(valset: Valset, entity: _SignedEntity) -> bool:
    """Tell whether validators holding at least two thirds of the power signed.

    Only signatures that recover to the validator's own address count.
    """
    by_signer = {sig.signed_by_address: sig for sig in entity.signatures}
    threshold = sum(valset.powers) * 2 // 3
    digest = keccak256(SIGNED_MESSAGE_PREFIX, entity.bytes_to_sign)
    _logger.debug("confirming consensus reached for %d validators", len(valset.validators))

    signed_power = 0
    for index, (validator, power) in enumerate(zip(valset.validators, valset.powers)):
        sig = by_signer.get(validator)
        if sig is None:
            continue
        if _recovered_address(digest, sig.signature) != validator:
            continue
        signed_power += power
        _logger.debug("good consensus from validator %d (%s)", index, validator)

    return signed_power >= threshold