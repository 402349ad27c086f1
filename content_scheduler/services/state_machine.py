from content_scheduler.utils.constants import STATES

ALLOWED_TRANSITIONS = {
    "pending": ["published", "cancelled"],
    "published": [],
    "cancelled": [],
}


class InvalidTransition(ValueError):
    pass


def ensure_transition(current: str, target: str) -> None:
    if current not in STATES:
        raise InvalidTransition(f"Unknown state: {current}")
    if target not in STATES:
        raise InvalidTransition(f"Unknown target state: {target}")

    allowed = ALLOWED_TRANSITIONS.get(current, [])
    if target not in allowed:
        raise InvalidTransition(f"Invalid transition: {current} -> {target}")


def is_terminal(state: str) -> bool:
    return not ALLOWED_TRANSITIONS.get(state)
