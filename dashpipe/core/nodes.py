"""Upstream node selection for delivery token issuance."""
from __future__ import annotations

import random
from typing import Sequence, Tuple

_system_random = random.SystemRandom()


class NodeSelector:
    """Uniform pick from a fixed pool; no affinity between calls."""

    def __init__(self, pool: Sequence[str], host_template: str = "{node}"):
        if not pool:
            raise ValueError("node pool must not be empty")
        self.pool: Tuple[str, ...] = tuple(pool)
        self.host_template = host_template

    def select(self) -> str:
        return _system_random.choice(self.pool)

    def hostname(self, node: str) -> str:
        return self.host_template.format(node=node)
