"""
Connection Routes - Connect/disconnect, enable/disable and status
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from typing import Optional

from core.errors import DriverError
from ..dependencies import get_app_state, require_connection, AppState

router = APIRouter(tags=["connection"])


class ConnectRequest(BaseModel):
    port: Optional[str] = None


@router.get("/ports")
def get_ports():
    """List available serial ports."""
    from core.serial_transport import SerialTransport
    return {"ports": SerialTransport.list_ports()}


@router.get("/status")
def get_status(state: AppState = Depends(get_app_state)):
    """Get current connection status and position."""
    return state.get_status()


@router.get("/history")
def get_history(limit: int = 50, state: AppState = Depends(get_app_state)):
    """Get recent command history."""
    return {"history": state.get_command_history(limit)}


@router.post("/connect")
def connect(req: ConnectRequest, state: AppState = Depends(get_app_state)):
    """Connect to the controller and perform the handshake."""
    try:
        state.connect(req.port)
        return {"success": True, "message": "Connected"}
    except DriverError as e:
        return {"success": False, "message": str(e)}


@router.post("/disconnect")
def disconnect(state: AppState = Depends(get_app_state)):
    """Disconnect from the controller and close all sub-drivers."""
    state.disconnect()
    return {"success": True}


@router.post("/enable")
def enable():
    """Enable motors / actuation on the whole chain."""
    driver = require_connection()
    driver.set_enabled(True)
    return {"success": True}


@router.post("/disable")
def disable(state: AppState = Depends(get_app_state)):
    """Disable motors. Best effort: also works when not connected."""
    if state.driver is not None:
        state.driver.set_enabled(False)
    return {"success": True}
