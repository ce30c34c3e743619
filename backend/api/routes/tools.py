"""
Tool Routes - Pick, place and actuators
"""

from typing import Union

from fastapi import APIRouter
from pydantic import BaseModel

from core.types import Actuator, Nozzle
from ..dependencies import require_connection

router = APIRouter(tags=["tools"])


class NozzleRequest(BaseModel):
    nozzle: str = "N1"


class ActuateRequest(BaseModel):
    """value true/false uses the boolean template, a number the numeric one."""
    name: str
    index: int = 0
    value: Union[bool, float]


@router.post("/pick")
def pick(req: NozzleRequest):
    """Turn on vacuum at a nozzle."""
    driver = require_connection()
    driver.pick(Nozzle(req.nozzle))
    return {"success": True}


@router.post("/place")
def place(req: NozzleRequest):
    """Release vacuum at a nozzle."""
    driver = require_connection()
    driver.place(Nozzle(req.nozzle))
    return {"success": True}


@router.post("/actuate")
def actuate(req: ActuateRequest):
    """Drive a named actuator."""
    driver = require_connection()
    driver.actuate(Actuator(req.name, index=req.index), req.value)
    return {"success": True}
