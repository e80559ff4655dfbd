"""New-entity gate: account names in a file that no registered client owns."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from loguru import logger

from adperf.domain.errors import UnknownAccountsError
from adperf.domain.fields import CanonicalField
from adperf.domain.models import ClientAccount
from adperf.locale_values import to_text


@dataclass(frozen=True)
class AccountPartition:
    known: dict[str, ClientAccount] = field(default_factory=dict)
    unknown: list[str] = field(default_factory=list)

    @property
    def has_unknown(self) -> bool:
        return bool(self.unknown)


@dataclass(frozen=True)
class NewAccountsDetected:
    """Gate result: nothing was written, the operator must resolve these names."""

    new_account_names: list[str]


def distinct_account_names(rows: Iterable[Mapping[CanonicalField, Any]]) -> list[str]:
    seen: dict[str, None] = {}
    for row in rows:
        name = to_text(row.get(CanonicalField.ACCOUNT_NAME))
        if name:
            seen.setdefault(name, None)
    return list(seen)


def partition_accounts(account_names: Sequence[str], clients: Sequence[ClientAccount]) -> AccountPartition:
    known: dict[str, ClientAccount] = {}
    unknown: list[str] = []
    for name in account_names:
        client = next((candidate for candidate in clients if candidate.matches(name)), None)
        if client is None:
            unknown.append(name)
        else:
            known[name] = client
    if unknown:
        logger.info(f"[gate] {len(unknown)} unknown account(s): {', '.join(unknown)}")
    return AccountPartition(known=known, unknown=unknown)


def check_new_accounts(
    rows: Sequence[Mapping[CanonicalField, Any]],
    clients: Sequence[ClientAccount],
    proceed_with_known: bool = False,
) -> NewAccountsDetected | AccountPartition:
    """Stop on unknown account names unless the operator chose to skip their rows."""
    partition = partition_accounts(distinct_account_names(rows), clients)
    if partition.has_unknown and not proceed_with_known:
        return NewAccountsDetected(new_account_names=list(partition.unknown))
    return partition


def ensure_known(rows: Sequence[Mapping[CanonicalField, Any]], clients: Sequence[ClientAccount]) -> AccountPartition:
    partition = partition_accounts(distinct_account_names(rows), clients)
    if partition.has_unknown:
        raise UnknownAccountsError(partition.unknown)
    return partition
