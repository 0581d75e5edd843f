"""YAML-file policy store, re-read on every lookup."""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)


class FilePolicyStore:
    """Policy records kept in a YAML file keyed by name.

    Example::

        alice.eth:
          rescue.enabled: "true"
          rescue.minHF: "1.2"
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def _load(self) -> object:
        with open(self._path) as f:
            return yaml.safe_load(f) or {}

    async def read_raw(self, name: str) -> dict[str, str] | None:
        data = await asyncio.to_thread(self._load)

        if not isinstance(data, dict):
            raise ValueError(f"Policy file {self._path} must contain a mapping")

        record = data.get(name)
        if not record:
            return None
        if not isinstance(record, dict):
            logger.warning("Policy record for %s is not a mapping, ignored", name)
            return None
        return {str(k): str(v) for k, v in record.items() if v is not None}
