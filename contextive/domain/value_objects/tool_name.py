import re
from dataclasses import dataclass

from ..exceptions.domain_exceptions import InvalidToolNameError


@dataclass(frozen=True)
class ToolName:
    """Immutable value object representing a registry-wide tool identifier."""

    value: str

    NAME_PATTERN = re.compile(r"[A-Za-z0-9_.\-]{1,128}")

    def __post_init__(self) -> None:
        if not self.NAME_PATTERN.fullmatch(self.value):
            raise InvalidToolNameError(f"Invalid tool name: {self.value!r}")

    def __str__(self) -> str:
        return self.value
