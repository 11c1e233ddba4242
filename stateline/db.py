"""Database settings and CSV persistence of chain states."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable, TextIO

from .datatypes import State


@dataclass
class DBSettings:
    """Settings for the chain database."""

    directory: str = "chainDB"
    cache_size_mb: float = 100.0

    @classmethod
    def default(cls) -> "DBSettings":
        return cls(directory="chainDB", cache_size_mb=100.0)


def _fmt(value: float) -> str:
    return format(float(value), "g")


def format_state(state: State) -> str:
    """Render a state as one CSV row: sample..., energy, sigma, beta, accepted, swap."""
    fields = [_fmt(v) for v in state.sample]
    fields.extend(
        [
            _fmt(state.energy),
            _fmt(state.sigma),
            _fmt(state.beta),
            str(int(bool(state.accepted))),
            str(state.swap_type.value),
        ]
    )
    return ",".join(fields)


class CSVChainArrayWriter:
    """Writes each chain's states to ``<directory>/<index>.csv``."""

    def __init__(self, directory: str | os.PathLike, num_chains: int) -> None:
        self._files: list[TextIO] = []
        try:
            for index in range(num_chains):
                path = os.path.join(os.fspath(directory), f"{index}.csv")
                self._files.append(open(path, "w", encoding="utf-8", newline=""))
        except OSError:
            self.close()
            raise

    def append(self, chain_id: int, states: Iterable[State]) -> None:
        """Append states to one chain's file and flush it."""
        if not 0 <= chain_id < len(self._files):
            raise IndexError(f"chain id {chain_id} out of range")
        handle = self._files[chain_id]
        for state in states:
            handle.write(format_state(state) + "\n")
        handle.flush()

    def close(self) -> None:
        for handle in self._files:
            handle.close()

    def __enter__(self) -> "CSVChainArrayWriter":
        return self

    def __exit__(self, *args) -> None:
        self.close()