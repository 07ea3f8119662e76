"""Constants shared across fleetview modules."""

from __future__ import annotations

USER_AGENT = "fleetview/0.1"

#: Default ``nextServiceMileage`` of a blank draft.
DEFAULT_NEXT_SERVICE_MILEAGE = 5000

#: Below this many miles remaining a vehicle is in the ``warning`` tier.
SERVICE_WARNING_MILES = 1000

MAX_VIN_LENGTH = 17
MIN_MODEL_YEAR = 1900

#: Firestore collection path holding one owner's vehicles.
COLLECTION_PATH_TEMPLATE = "artifacts/{app_id}/users/{owner_id}/vehicles"

#: MQTT topic carrying change notifications for one owner's collection.
MQTT_TOPIC_TEMPLATE = "fleet/{app_id}/users/{owner_id}/vehicles"

#: Firestore auto-ids are 20 characters.
RECORD_ID_LENGTH = 20

NOT_READY_MESSAGE = "Database connection not ready."
