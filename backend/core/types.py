"""
Core immutable types for the G-code driver.

All value types are frozen dataclasses to prevent accidental mutation.
NaN on a Location axis means "unspecified" (do not move this axis).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional


# =============================================================================
# Units
# =============================================================================


class LengthUnit(Enum):
    """Linear units, valued by their size in millimeters."""
    MILLIMETERS = "Millimeters"
    CENTIMETERS = "Centimeters"
    METERS = "Meters"
    INCHES = "Inches"
    FEET = "Feet"
    MILS = "Mils"
    MICRONS = "Microns"

    @property
    def millimeters(self) -> float:
        """Size of one of this unit in millimeters."""
        return _MM_PER_UNIT[self]

    def convert(self, value: float, to: LengthUnit) -> float:
        """Convert a value in this unit into another unit."""
        if to is self:
            return value
        return value * self.millimeters / to.millimeters


_MM_PER_UNIT = {
    LengthUnit.MILLIMETERS: 1.0,
    LengthUnit.CENTIMETERS: 10.0,
    LengthUnit.METERS: 1000.0,
    LengthUnit.INCHES: 25.4,
    LengthUnit.FEET: 304.8,
    LengthUnit.MILS: 0.0254,
    LengthUnit.MICRONS: 0.001,
}


# =============================================================================
# Location Types
# =============================================================================


@dataclass(frozen=True)
class Location:
    """
    Unit-tagged machine location.

    x/y/z are in `units`, rotation is degrees about the C axis.
    """
    units: LengthUnit = LengthUnit.MILLIMETERS
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    rotation: float = 0.0

    def convert_to_units(self, units: LengthUnit) -> Location:
        """Same location expressed in another linear unit."""
        if units is self.units:
            return self
        return Location(
            units,
            self.units.convert(self.x, units),
            self.units.convert(self.y, units),
            self.units.convert(self.z, units),
            self.rotation,
        )

    def add(self, other: Location) -> Location:
        """Axis-wise sum, result in this location's units."""
        other = other.convert_to_units(self.units)
        return Location(
            self.units,
            self.x + other.x,
            self.y + other.y,
            self.z + other.z,
            self.rotation + other.rotation,
        )

    def subtract(self, other: Location) -> Location:
        """Axis-wise difference, result in this location's units."""
        other = other.convert_to_units(self.units)
        return Location(
            self.units,
            self.x - other.x,
            self.y - other.y,
            self.z - other.z,
            self.rotation - other.rotation,
        )

    def derive(
        self,
        x: Optional[float] = None,
        y: Optional[float] = None,
        z: Optional[float] = None,
        rotation: Optional[float] = None,
    ) -> Location:
        """Copy with the given axes replaced (None keeps the current value)."""
        return Location(
            self.units,
            self.x if x is None else x,
            self.y if y is None else y,
            self.z if z is None else z,
            self.rotation if rotation is None else rotation,
        )

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "units": self.units.value,
            "x": self.x,
            "y": self.y,
            "z": self.z,
            "rotation": self.rotation,
        }

    @classmethod
    def from_dict(cls, d: dict) -> Location:
        """Deserialize from dictionary. Missing axes are unspecified (NaN)."""
        return cls(
            units=LengthUnit(d.get("units", LengthUnit.MILLIMETERS.value)),
            x=d.get("x", math.nan),
            y=d.get("y", math.nan),
            z=d.get("z", math.nan),
            rotation=d.get("rotation", math.nan),
        )


ZERO_OFFSETS = Location()


@dataclass(frozen=True)
class Position:
    """
    Last commanded machine position, in the driver's working units.

    Only a successful move changes it.
    """
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    c: float = 0.0

    def to_location(self, units: LengthUnit) -> Location:
        return Location(units, self.x, self.y, self.z, self.c)

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "z": self.z, "c": self.c}


# =============================================================================
# Head Mountables
# =============================================================================


@dataclass(frozen=True)
class HeadMountable:
    """Anything mounted on the head at a fixed offset from it."""
    name: str
    head_offsets: Location = ZERO_OFFSETS


@dataclass(frozen=True)
class Nozzle(HeadMountable):
    """Pick-and-place tool. The only mountable allowed to move Z."""
    pass


@dataclass(frozen=True)
class Camera(HeadMountable):
    pass


@dataclass(frozen=True)
class Actuator(HeadMountable):
    """Named output (valve, light, feeder pin) addressed by index."""
    index: int = 0


def is_nozzle(hm: HeadMountable) -> bool:
    return isinstance(hm, Nozzle)
