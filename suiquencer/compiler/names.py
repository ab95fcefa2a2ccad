"""
Stage 3: Resolve human-readable names once per run.

SuiNS names (``alice.sui``, ``@alice``) may appear as transfer recipients and
balance-check addresses; ENS names (``alice.eth``) as bridge destinations.
Each distinct name is looked up exactly once and the same answer is used for
validation and for building ledger calls.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from shared.logger import get_logger
from suiquencer.compiler.sequence import Step
from suiquencer.errors import ValidationPhaseError
from suiquencer.runtime.services import NameResolver
from suiquencer.schema.models import BridgeNode, LogicNode, TransferNode

logger = get_logger(__name__)

_SUINS_PATTERN = re.compile(r"^(?:[a-z0-9-]+\.)+sui$|^(?:[a-z0-9-]+\.)*@[a-z0-9-]+$", re.IGNORECASE)
_ENS_PATTERN = re.compile(r"^(?:[a-z0-9-]+\.)+eth$", re.IGNORECASE)


def is_suins_name(value: Optional[str]) -> bool:
    return bool(value) and bool(_SUINS_PATTERN.match(value.strip()))


def is_ens_name(value: Optional[str]) -> bool:
    return bool(value) and bool(_ENS_PATTERN.match(value.strip()))


@dataclass
class ResolvedNames:
    addresses: Dict[str, str] = field(default_factory=dict)

    def lookup(self, value: Optional[str]) -> Optional[str]:
        """Resolved address for a name, or the value itself when it is not a name."""
        if value is None:
            return None
        return self.addresses.get(value.strip().lower(), value.strip())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.strip().lower() in self.addresses

    def __len__(self) -> int:
        return len(self.addresses)


def collect_names(steps: Iterable[Step]) -> List[Tuple[int, str]]:
    """(step index, name) for every name the run needs, first use first."""

    found: List[Tuple[int, str]] = []
    for step in steps:
        node = step.node
        candidate: Optional[str] = None
        if isinstance(node, TransferNode) and is_suins_name(node.data.recipient_address):
            candidate = node.data.recipient_address
        elif isinstance(node, LogicNode) and is_suins_name(node.data.balance_address):
            candidate = node.data.balance_address
        elif isinstance(node, BridgeNode) and is_ens_name(node.data.ethereum_address):
            candidate = node.data.ethereum_address
        if candidate:
            found.append((step.index, candidate.strip()))
    return found


async def resolve_step_names(steps: Iterable[Step], resolver: Optional[NameResolver]) -> ResolvedNames:
    resolved = ResolvedNames()
    for step_index, name in collect_names(steps):
        key = name.lower()
        if key in resolved.addresses:
            continue
        if resolver is None:
            raise ValidationPhaseError(f'Cannot resolve "{name}": no name resolver configured', step_index=step_index)

        try:
            address = await resolver.resolve(name)
        except Exception as exc:
            raise ValidationPhaseError(f'Failed to resolve name "{name}": {exc}', step_index=step_index) from exc

        if not address:
            raise ValidationPhaseError(f'Name "{name}" does not resolve to an address', step_index=step_index)

        logger.info("Resolved %s -> %s", name, address)
        resolved.addresses[key] = address
    return resolved
