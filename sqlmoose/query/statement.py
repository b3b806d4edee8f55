"""
Compiled statement value type.

Every compiler in sqlmoose produces a CompiledStatement: the statement text
with `?` placeholders plus the parameter values in placeholder order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Tuple


@dataclass(frozen=True)
class CompiledStatement:
    """A parameterized statement ready for an executor.

    Attributes:
        text: Statement text with positional `?` placeholders
        params: Parameter values, in placeholder order
    """

    text: str
    params: Tuple[Any, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.params, tuple):
            object.__setattr__(self, "params", tuple(self.params))

    @classmethod
    def join(
        cls,
        fragments: Iterable[CompiledStatement],
        separator: str,
    ) -> CompiledStatement:
        """Join fragments with a separator, concatenating parameters in order."""
        texts = []
        params: list[Any] = []
        for fragment in fragments:
            texts.append(fragment.text)
            params.extend(fragment.params)
        return cls(separator.join(texts), tuple(params))

    def __str__(self) -> str:
        return self.text
