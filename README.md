# pigeonrelay

`pigeonrelay` holds the building blocks for relaying validator-signed
messages to EVM chains. It checks whether the signatures on a message
carry at least two thirds of a validator set's power. It lays those
signatures out as the consensus argument a Compass contract expects. It
also fetches event logs from a node, splitting the block range when the
node refuses a range as too wide.

## Installation

```
pip install pigeonrelay
```

To run the test suite:

```
pip install "pigeonrelay[test]"
pytest
```

## What is in the package

- `pigeonrelay.types`: dataclasses for the values the relayer works with:
  - chain data: `Log`, `FilterQuery` (with `replace` for changed copies),
    `Header`, and `Transaction`. `Transaction` handles legacy (type 0) and
    dynamic-fee (type 2) transactions. It offers `signing_hash`, `encode`,
    `hash`, `cost`, `sign` and `sender`;
  - queued messages: `Message`, `MessageWithSignatures`, `Valset`,
    `ValidatorSignature`, `SubmitLogicCall`, `UpdateValset`,
    `UploadSmartContract`, `ValidatorBalancesAttestation` and
    `ValidatorBalancesAttestationRes`;
  - proofs: `TxExecutedProof`, `SmartContractExecutionErrorProof`;
  - arguments for the Compass contract: `CompassConsensus`,
    `CompassValset`, `Signature`, `CompassLogicCallArgs`,
    `CompassTokenSendArgs`;
  - bridge batches, events and claims: `BatchTransaction`,
    `GravityBatchWithSignatures`, `BatchSendEvent`, `SendToPalomaEvent`,
    `BatchSendToEvmClaim`, `SendToPalomaClaim`.
- `pigeonrelay.crypto`: `keccak256`, secp256k1 keys
  (`generate_private_key`, `private_key_to_public_key`), deterministic
  signing (`sign_hash`, returning R || S || V) and public key recovery
  (`recover_public_key`). It also has address helpers: `hex_to_address`,
  `to_checksum_address` and `public_key_to_address`.
- `pigeonrelay.consensus`:
  - `is_consensus_reached` recovers each validator's signature over the
    prefixed message hash. It counts the power of those that match the
    validator's own checksummed address. It compares the sum with two
    thirds of the total power.
  - `build_compass_consensus` lines the signatures up in validator order.
    A validator without a signature gets an all-zero signature.
  - `transform_valset` turns a `Valset` into a `CompassValset`.
- `pigeonrelay.logs`: `filter_logs` fetches the logs matching a
  `FilterQuery` and hands them to a callback, newest first. A missing
  range end is filled in from the current block height. When the node's
  error says the block range is too wide, the range is halved and each
  half is searched. With `reverse_order`, the later half is searched
  first. The search stops as soon as the callback returns true.
  `should_do_binary_search` tells which errors call for the split.

`filter_logs` takes any object with `filter_logs(query)` and
`header_by_number(number)` methods, so it works with whatever node
connection the caller provides.

## Example

```python
from pigeonrelay.consensus import is_consensus_reached
from pigeonrelay.crypto import (
    generate_private_key,
    keccak256,
    private_key_to_public_key,
    public_key_to_address,
    sign_hash,
    to_checksum_address,
)
from pigeonrelay.types import Message, MessageWithSignatures, ValidatorSignature, Valset

key = generate_private_key()
address = to_checksum_address(public_key_to_address(private_key_to_public_key(key)))
payload = keccak256(b"sign me")
digest = keccak256(b"\x19Ethereum Signed Message:\n32", payload)

message = MessageWithSignatures(
    id=1,
    bytes_to_sign=payload,
    msg=Message(action=None),
    signatures=[
        ValidatorSignature(signed_by_address=address, signature=sign_hash(digest, key)),
    ],
)
valset = Valset(validators=[address], powers=[10], valset_id=1)

assert is_consensus_reached(valset, message)
```

## What the package does not do

The package does not connect to a node by itself, and it keeps no
keystore. It does not send transactions or talk to a MEV relay. It does
not process a message queue or report evidence and error data back to
Paloma. It has no command-line program. It gives the types, the
cryptography, the consensus checks and the log search that such a
relayer is built from.