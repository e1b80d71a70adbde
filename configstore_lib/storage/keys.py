"""Mapping between (namespace, key) pairs and storage keys.

A storage key is ``<namespace>.<key>``. Callers must not pick keys that,
once joined, collide with another namespace/key pair; this is not checked.
"""
from typing import Dict, Iterable, List, Mapping

SEPARATOR = "."


def to_storage_key(namespace: str, key: str) -> str:
    return f"{namespace}{SEPARATOR}{key}"


def from_storage_key(namespace: str, storage_key: str) -> str:
    prefix = namespace + SEPARATOR
    if not storage_key.startswith(prefix):
        raise ValueError(f"{storage_key!r} is not in namespace {namespace!r}")
    return storage_key[len(prefix):]


def to_storage_keys(namespace: str, keys: Iterable[str]) -> List[str]:
    return [to_storage_key(namespace, k) for k in keys]


def reverse_mapping(namespace: str, keys: Iterable[str]) -> Dict[str, str]:
    """Return ``{storage_key: key}`` for `keys` under `namespace`."""
    return {to_storage_key(namespace, k): k for k in keys}


def interleave(namespace: str, properties: Mapping[str, str]) -> Dict[str, str]:
    """Return ``{storage_key: value}``, the mapping shape MSET accepts."""
    return {to_storage_key(namespace, k): v for k, v in properties.items()}
