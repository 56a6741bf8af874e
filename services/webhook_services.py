import logging
from typing import Any, Dict

from pydantic import ValidationError as PydanticValidationError

from models.webhook_model import EntryEvent, ExitEvent, ParkedEvent
from services import session_services
from utils.errors import ValidationError

logger = logging.getLogger(__name__)

EVENT_MODELS = {
    "ENTRY": EntryEvent,
    "PARKED": ParkedEvent,
    "EXIT": ExitEvent,
}

PROCESSED_RESPONSE = {"status": "Event processed successfully"}


def _describe_errors(error: PydanticValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in error.errors()
    )


def parse_event(payload: Dict[str, Any]):
    """
    Checks the payload shape and returns the matching typed event.
    Nothing is stored before this succeeds.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Event payload must be a JSON object")

    event_type = payload.get("event_type")
    if event_type is None:
        raise ValidationError("Missing required field: event_type")

    if not isinstance(event_type, str) or event_type not in EVENT_MODELS:
        logger.warning(f"Unknown event type: {event_type!r}")
        raise ValidationError(f"Unknown event type: {event_type!r}")

    model = EVENT_MODELS[event_type]

    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid {event_type} event: {_describe_errors(e)}")


def dispatch_event(payload: Dict[str, Any]) -> Dict[str, str]:
    event = parse_event(payload)
    logger.info(f"Received webhook event: {event.event_type}")

    if isinstance(event, EntryEvent):
        session_services.process_entry(event.license_plate, event.entry_time)
    elif isinstance(event, ParkedEvent):
        session_services.process_parked(event.license_plate, event.lat, event.lng)
    elif isinstance(event, ExitEvent):
        session_services.process_exit(event.license_plate, event.exit_time)

    return PROCESSED_RESPONSE
