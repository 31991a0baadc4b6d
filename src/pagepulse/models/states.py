"""Interaction driver state machine definitions."""

from enum import Enum


class DriverVariant(str, Enum):
    """Deployment-selected interaction driver."""

    ENGAGEMENT = "engagement"
    IDLE = "idle"


class DriverState(str, Enum):
    """States visited by the interaction drivers."""

    INIT = "INIT"
    NAVIGATE = "NAVIGATE"
    ENGAGE = "ENGAGE"
    IDLE_WAIT = "IDLE_WAIT"
    RETURN = "RETURN"


# Normal state transitions per variant
STATE_TRANSITIONS: dict[DriverVariant, dict[DriverState, list[DriverState]]] = {
    DriverVariant.ENGAGEMENT: {
        DriverState.INIT: [DriverState.NAVIGATE],
        DriverState.NAVIGATE: [DriverState.NAVIGATE, DriverState.ENGAGE],
        DriverState.ENGAGE: [DriverState.NAVIGATE],
    },
    DriverVariant.IDLE: {
        DriverState.INIT: [DriverState.NAVIGATE],
        DriverState.NAVIGATE: [DriverState.IDLE_WAIT, DriverState.RETURN],
        DriverState.IDLE_WAIT: [DriverState.RETURN],
        DriverState.RETURN: [DriverState.NAVIGATE],
    },
}
