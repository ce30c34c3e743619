"""
Driver configuration.

Validated once at load time: bad regexes and bad placeholder formats fail
here, never in the middle of an exchange with the controller.
"""

from __future__ import annotations

import re
from pathlib import Path
from re import Pattern
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .template import validate_template
from .types import LengthUnit


DEFAULT_PORT = "mock"
BAUD_RATE = 115200


class DriverConfig(BaseModel):
    """Command templates, line patterns and timing for one G-code driver."""

    model_config = ConfigDict(frozen=True)

    units: LengthUnit = LengthUnit.MILLIMETERS
    max_feed_rate: float = 1000

    # Templates. None means "send nothing" for that operation.
    connect_command: Optional[str] = "G21\nG90\nM82"
    enable_command: Optional[str] = "M810"
    disable_command: Optional[str] = "M84\nM811"
    home_command: Optional[str] = "M84\nG4P500\nG28 X0 Y0\nG92 X0 Y0 Z0 E0"
    move_to_command: Optional[str] = (
        "G0{X:X%.4f}{Y:Y%.4f}{Z:Z%.4f}{Rotation:E%.4f}F{FeedRate:%.0f}\nM400"
    )
    pick_command: Optional[str] = "M3"
    place_command: Optional[str] = "M5"
    actuate_boolean_command: Optional[str] = "G4S1"
    actuate_double_command: Optional[str] = "G4S1"
    sync_command: Optional[str] = "M114"

    # Whole-line patterns
    command_confirm_regex: Pattern[str] = re.compile("^ok.*")
    sync_regex: Pattern[str] = re.compile(".*X:.*Y:.*")

    # Seconds
    command_timeout: float = Field(default=5.0, gt=0)
    connect_timeout: float = Field(default=5.0, gt=0)
    sync_poll_timeout: float = Field(default=0.2, gt=0)

    # Transport
    port: str = DEFAULT_PORT
    baud_rate: int = BAUD_RATE

    sub_drivers: List[DriverConfig] = Field(default_factory=list)

    @field_validator(
        "connect_command",
        "enable_command",
        "disable_command",
        "home_command",
        "move_to_command",
        "pick_command",
        "place_command",
        "actuate_boolean_command",
        "actuate_double_command",
        "sync_command",
    )
    @classmethod
    def _check_template(cls, value: Optional[str]) -> Optional[str]:
        return validate_template(value)


def load_config(path: Union[str, Path]) -> DriverConfig:
    """Load a driver configuration from a JSON file."""
    return DriverConfig.model_validate_json(Path(path).read_text())
