"""
API Dependencies - Dependency injection for FastAPI

Holds the one driver chain the API operates on.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
import os
import sys

# Add parent to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import DriverConfig, load_config
from driver import GcodeDriver, chain_connected, connect_chain, create_driver


CONFIG_ENV = "GCODE_DRIVER_CONFIG"


def default_config() -> DriverConfig:
    """Config from the file named by $GCODE_DRIVER_CONFIG, else built-in defaults."""
    path = os.environ.get(CONFIG_ENV)
    if path:
        return load_config(path)
    return DriverConfig()


@dataclass
class AppState:
    """Application state container."""
    config: DriverConfig = field(default_factory=default_config)
    driver: Optional[GcodeDriver] = None

    @property
    def is_connected(self) -> bool:
        return self.driver is not None and chain_connected(self.driver)

    def connect(self, port: Optional[str] = None) -> None:
        """
        Build the driver chain and run the handshake on every controller.

        port overrides the configured port of the primary driver.
        """
        if self.driver is not None:
            self.disconnect()

        config = self.config
        if port:
            config = config.model_copy(update={"port": port})

        driver = create_driver(config)
        connect_chain(driver)
        self.driver = driver

    def disconnect(self) -> None:
        """Close the driver and its sub-drivers."""
        if self.driver is not None:
            self.driver.close()
        self.driver = None

    def get_status(self) -> Dict[str, Any]:
        """Get current status for API."""
        if self.driver is None:
            return {
                "connected": False,
                "port": self.config.port,
                "units": self.config.units.value,
                "position": None,
                "sub_drivers": len(self.config.sub_drivers),
            }
        return {
            "connected": chain_connected(self.driver),
            "port": self.driver.config.port,
            "units": self.driver.config.units.value,
            "position": self.driver.position.to_dict(),
            "sub_drivers": len(self.driver.sub_drivers),
        }

    def get_command_history(self, limit: int = 50) -> List[Dict[str, Any]]:
        """Get recent command history."""
        if self.driver is None:
            return []

        return [
            {
                "command": r.command,
                "responses": r.responses,
                "success": r.success,
                "timestamp": r.timestamp.isoformat(),
            }
            for r in self.driver.get_command_history(limit)
        ]


# Global instance
_app_state: Optional[AppState] = None


def get_app_state() -> AppState:
    """Get the global app state instance."""
    global _app_state
    if _app_state is None:
        _app_state = AppState()
    return _app_state


def require_connection() -> GcodeDriver:
    """Get driver, raising error if not connected."""
    from fastapi import HTTPException

    state = get_app_state()
    if not state.is_connected or state.driver is None:
        raise HTTPException(status_code=400, detail="Not connected to controller")
    return state.driver
