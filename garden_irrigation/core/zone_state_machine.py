from garden_irrigation.core.enums import ZoneState

ALLOWED_TRANSITIONS = {
    ZoneState.EVALUATING: {ZoneState.SKIPPED, ZoneState.WATERING},
    ZoneState.SKIPPED: {ZoneState.DONE},
    ZoneState.WATERING: {ZoneState.STOPPING},
    ZoneState.STOPPING: {ZoneState.DONE},
    ZoneState.DONE: set(),
}

def is_allowed(old: ZoneState, new: ZoneState) -> bool:
    allowed = ALLOWED_TRANSITIONS.get(old, set())
    return new in allowed
