"""Mouse buttons and the button-state bit mask reported by the device."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class MouseButton(Enum):
    """A mouse button, valued by its name in device commands."""

    LEFT = "left"
    RIGHT = "right"
    MIDDLE = "middle"
    SIDE1 = "ms1"
    SIDE2 = "ms2"

    def command_name(self) -> str:
        """Name used for this button in ``km.<name>(...)`` commands."""
        return self.value


_BITS = (
    ("left", 0x01),
    ("right", 0x02),
    ("middle", 0x04),
    ("side1", 0x08),
    ("side2", 0x10),
)


@dataclass(frozen=True)
class MouseButtonStates:
    """Pressed state of each of the five mouse buttons."""

    left: bool = False
    right: bool = False
    middle: bool = False
    side1: bool = False
    side2: bool = False

    @classmethod
    def from_mask(cls, mask: int) -> MouseButtonStates:
        """Decode a one-byte button mask; bits above the fifth are ignored."""
        if not 0 <= mask <= 0xFF:
            raise ValueError(f"button mask must fit in one byte, got {mask}")
        return cls(**{name: bool(mask & bit) for name, bit in _BITS})

    def to_mask(self) -> int:
        """Encode the states as a one-byte button mask."""
        return sum(bit for name, bit in _BITS if getattr(self, name))