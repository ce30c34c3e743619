"""
Movement Routes - Home, move, location queries
"""

import math
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from core.types import Camera, HeadMountable, LengthUnit, Location, Nozzle
from ..dependencies import require_connection

router = APIRouter(tags=["movement"])


class OffsetsModel(BaseModel):
    units: LengthUnit = LengthUnit.MILLIMETERS
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    rotation: float = 0.0


class MountableModel(BaseModel):
    name: str = "N1"
    kind: str = "nozzle"
    head_offsets: OffsetsModel = Field(default_factory=OffsetsModel)

    def build(self) -> HeadMountable:
        offsets = Location(**self.head_offsets.model_dump())
        if self.kind == "nozzle":
            return Nozzle(self.name, offsets)
        if self.kind == "camera":
            return Camera(self.name, offsets)
        raise HTTPException(status_code=400, detail=f"Invalid mountable kind: {self.kind}")


class MoveRequest(BaseModel):
    """Axes left out are not moved."""
    mountable: MountableModel = Field(default_factory=MountableModel)
    units: LengthUnit = LengthUnit.MILLIMETERS
    x: Optional[float] = None
    y: Optional[float] = None
    z: Optional[float] = None
    rotation: Optional[float] = None
    speed: float = Field(default=1.0, gt=0, le=1.0)


def _axis(value: Optional[float]) -> float:
    return math.nan if value is None else value


@router.post("/home")
def go_home():
    """Home the machine (no timeout)."""
    driver = require_connection()
    driver.home()
    return {"success": True, "position": driver.position.to_dict()}


@router.post("/move")
def move_to(req: MoveRequest):
    """Move a mountable to a location."""
    driver = require_connection()
    target = Location(req.units, _axis(req.x), _axis(req.y), _axis(req.z), _axis(req.rotation))
    driver.move_to(req.mountable.build(), target, req.speed)
    return {"success": True, "position": driver.position.to_dict()}


@router.post("/location")
def get_location(mountable: MountableModel):
    """Current location of a mountable, from the tracked position."""
    driver = require_connection()
    return {"success": True, "location": driver.get_location(mountable.build()).to_dict()}
