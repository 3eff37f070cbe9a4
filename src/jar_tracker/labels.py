"""QR label payloads identifying a single jar."""

import json
from typing import Literal

from pydantic import BaseModel, Field, StrictInt, ValidationError

LABEL_TYPE = "jartracker-jar"


class JarLabel(BaseModel):
    """The JSON object printed into a jar's QR code."""

    type: Literal["jartracker-jar"]
    id: StrictInt = Field(gt=0)


def encode_jar_label(jar_id: int) -> str:
    """Build the label payload for a jar id."""
    return json.dumps({"type": LABEL_TYPE, "id": jar_id}, separators=(",", ":"))


def decode_jar_label(payload: str | bytes) -> int | None:
    """Return the jar id in a label payload, or None if it is not a jar label.

    Payloads from other apps, malformed JSON and non-integer ids all give
    None.
    """
    try:
        return JarLabel.model_validate_json(payload).id
    except ValidationError:
        return None
