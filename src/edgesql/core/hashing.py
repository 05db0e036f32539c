"""
Migration checksums.

A migration's ``up`` script is fingerprinted when it is applied so that later
edits to an already-applied script can be noticed. The fingerprint only
detects accidental content drift; it is not a security control, so a fast
non-cryptographic hash is used.

Examples:
    >>> fnv1a_32("")
    '811c9dc5'
    >>> fnv1a_32("a")
    'e40c292c'
    >>> checksum("CREATE TABLE t (id TEXT)") == checksum("CREATE TABLE t (id TEXT)")
    True

Tags:
    hashing, checksum, migrations, drift-detection, edgesql
"""

FNV32_OFFSET_BASIS = 0x811C9DC5
FNV32_PRIME = 0x01000193


def fnv1a_32(content: str) -> str:
    """32-bit FNV-1a over the UTF-8 bytes of ``content``, as 8 hex chars."""
    value = FNV32_OFFSET_BASIS
    for byte in content.encode("utf-8"):
        value ^= byte
        value = (value * FNV32_PRIME) & 0xFFFFFFFF
    return f"{value:08x}"


def checksum(script: str) -> str:
    """Checksum recorded for a migration script."""
    return fnv1a_32(script)


__all__ = ["fnv1a_32", "checksum"]
