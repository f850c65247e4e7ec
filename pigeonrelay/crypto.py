"""Keccak hashing, EVM addresses and secp256k1 signing with key recovery."""

from __future__ import annotations

import hashlib
import hmac
import secrets

from Crypto.Hash import keccak

_P = 2**256 - 2**32 - 977
CURVE_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
_G = (
    0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798,
    0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8,
)

_Point = tuple[int, int] | None


def keccak256(*args: bytes) -> bytes:
    """Return the Keccak-256 digest of the concatenated arguments."""
    digest = keccak.new(digest_bits=256)
    for chunk in args:
        digest.update(bytes(chunk))
    return digest.digest()


def hex_to_address(value: str) -> bytes:
    """Convert a hex string to a 20-byte address, keeping the rightmost bytes."""
    text = value[2:] if value[:2] in ("0x", "0X") else value
    if len(text) % 2:
        text = "0" + text
    raw = bytes.fromhex(text)
    return raw[-20:].rjust(20, b"\x00")


def to_checksum_address(address: bytes) -> str:
    """Return the mixed-case checksummed hex form of a 20-byte address."""
    if len(address) != 20:
        raise ValueError("address must be 20 bytes long")
    lower = address.hex()
    hashed = keccak256(lower.encode("ascii")).hex()
    chars = (
        char.upper() if char.isalpha() and int(nibble, 16) >= 8 else char
        for char, nibble in zip(lower, hashed)
    )
    return "0x" + "".join(chars)


def _add(a: _Point, b: _Point) -> _Point:
    if a is None:
        return b
    if b is None:
        return a
    x1, y1 = a
    x2, y2 = b
    if x1 == x2:
        if (y1 + y2) % _P == 0:
            return None
        lam = 3 * x1 * x1 * pow(2 * y1, -1, _P)
    else:
        lam = (y2 - y1) * pow(x2 - x1, -1, _P)
    lam %= _P
    x3 = (lam * lam - x1 - x2) % _P
    return x3, (lam * (x1 - x3) - y1) % _P


def _mul(k: int, point: _Point) -> _Point:
    result: _Point = None
    addend = point
    while k:
        if k & 1:
            result = _add(result, addend)
        addend = _add(addend, addend)
        k >>= 1
    return result


def _check_private_key(private_key: int) -> None:
    if not 1 <= private_key < CURVE_ORDER:
        raise ValueError("invalid private key")


def _check_digest(digest: bytes) -> None:
    if len(digest) != 32:
        raise ValueError("hash is required to be exactly 32 bytes")


def generate_private_key() -> int:
    """Return a fresh random secp256k1 private key."""
    return secrets.randbelow(CURVE_ORDER - 1) + 1


def _encode_point(point: tuple[int, int]) -> bytes:
    return b"\x04" + point[0].to_bytes(32, "big") + point[1].to_bytes(32, "big")


def private_key_to_public_key(private_key: int) -> bytes:
    """Return the 65-byte uncompressed public key for a private key."""
    _check_private_key(private_key)
    point = _mul(private_key, _G)
    assert point is not None
    return _encode_point(point)


def public_key_to_address(public_key: bytes) -> bytes:
    """Return the 20-byte address of an uncompressed public key."""
    if len(public_key) == 65 and public_key[0] == 4:
        body = public_key[1:]
    elif len(public_key) == 64:
        body = public_key
    else:
        raise ValueError("invalid public key")
    return keccak256(body)[-20:]


def _nonces(private_key: int, digest: bytes):
    x = private_key.to_bytes(32, "big")
    h = (int.from_bytes(digest, "big") % CURVE_ORDER).to_bytes(32, "big")
    v = b"\x01" * 32
    k = b"\x00" * 32

    def mac(key: bytes, data: bytes) -> bytes:
        return hmac.new(key, data, hashlib.sha256).digest()

    k = mac(k, v + b"\x00" + x + h)
    v = mac(k, v)
    k = mac(k, v + b"\x01" + x + h)
    v = mac(k, v)
    while True:
        v = mac(k, v)
        candidate = int.from_bytes(v, "big")
        if 1 <= candidate < CURVE_ORDER:
            yield candidate
        k = mac(k, v + b"\x00")
        v = mac(k, v)


def sign_hash(digest: bytes, private_key: int) -> bytes:
    """Sign a 32-byte digest, returning R || S || V with V the recovery id."""
    _check_digest(digest)
    _check_private_key(private_key)
    e = int.from_bytes(digest, "big")
    for nonce in _nonces(private_key, digest):
        point = _mul(nonce, _G)
        assert point is not None
        r = point[0] % CURVE_ORDER
        if r == 0:
            continue
        s = pow(nonce, -1, CURVE_ORDER) * (e + r * private_key) % CURVE_ORDER
        if s == 0:
            continue
        recovery_id = (point[1] & 1) | (2 if point[0] >= CURVE_ORDER else 0)
        if s > CURVE_ORDER // 2:
            s = CURVE_ORDER - s
            recovery_id ^= 1
        return r.to_bytes(32, "big") + s.to_bytes(32, "big") + bytes([recovery_id])
    raise AssertionError("unreachable")


def recover_public_key(digest: bytes, signature: bytes) -> bytes:
    """Recover the 65-byte public key that produced a signature over a digest."""
    _check_digest(digest)
    if len(signature) != 65:
        raise ValueError("invalid signature length")
    r = int.from_bytes(signature[:32], "big")
    s = int.from_bytes(signature[32:64], "big")
    recovery_id = signature[64]
    if recovery_id > 3:
        raise ValueError("invalid signature recovery id")
    if not (1 <= r < CURVE_ORDER and 1 <= s < CURVE_ORDER):
        raise ValueError("invalid signature values")
    x = r + CURVE_ORDER if recovery_id & 2 else r
    if x >= _P:
        raise ValueError("invalid signature values")
    alpha = (pow(x, 3, _P) + 7) % _P
    beta = pow(alpha, (_P + 1) // 4, _P)
    if beta * beta % _P != alpha:
        raise ValueError("invalid signature: point not on curve")
    y = beta if beta % 2 == recovery_id & 1 else _P - beta
    r_inv = pow(r, -1, CURVE_ORDER)
    e = int.from_bytes(digest, "big")
    u1 = (-e * r_inv) % CURVE_ORDER
    u2 = (s * r_inv) % CURVE_ORDER
    point = _add(_mul(u1, _G), _mul(u2, (x, y)))
    if point is None:
        raise ValueError("invalid signature: recovered point at infinity")
    return _encode_point(point)