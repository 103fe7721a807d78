# Copyright (C) 2025 Gil Benezer
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
Model builders: linear state-space container and the DC motor model.
"""

from .dc_motor import (
    DCMotor,
    DCMotorParameters,
    position_state_space,
    position_transfer_function,
    speed_state_space,
    speed_transfer_function,
)
from .linear_system import LinearSystem

__all__ = [
    "LinearSystem",
    "DCMotor",
    "DCMotorParameters",
    "speed_transfer_function",
    "position_transfer_function",
    "speed_state_space",
    "position_state_space",
]
