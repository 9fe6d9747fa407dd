"""
Webhook Payload Validator

Catches completely malformed entities before they reach the mapper. Only
required fields are enforced; optional and nested fields document the
expected shape and are not checked. Unknown entity types always pass so a
new Wix webhook can't break ingestion.
"""

import logging
from typing import Any, Dict, Optional

from .webhook_errors import ValidationError
from ..utils.sanitization import sanitize_payload

logger = logging.getLogger(__name__)


SCHEMAS: Dict[str, Dict[str, Any]] = {
    "booking": {
        "required": ["id"],
        "optional": ["contactDetails", "bookedEntity", "status", "paymentStatus", "createdDate"],
        "nested": {
            "contactDetails": ["email", "phone", "firstName", "lastName", "contactId"],
            "bookedEntity": ["title", "slot"],
        },
    },
    "contact": {
        "required": ["id"],
        "optional": ["info", "createdDate", "updatedDate"],
        "nested": {
            "info": ["name", "emails", "phones", "addresses"],
        },
    },
    "order": {
        "required": ["id"],
        "optional": ["number", "status", "buyerInfo", "totals", "lineItems", "createdDate"],
    },
    "product": {
        "required": ["id"],
        "optional": ["name", "description", "price", "stock", "productType"],
    },
    "loyalty": {
        # accounts are keyed on the contact
        "required": ["id", "contactId"],
        "optional": ["points", "tier", "createdDate"],
    },
}


def validate_payload(entity: Any, entity_type: Optional[str]) -> dict:
    """
    Validate an entity against its type's schema and return it sanitized.

    Raises:
        ValidationError: entity is not an object, or a required field is missing
    """
    if not isinstance(entity, dict):
        raise ValidationError(details="Invalid payload: must be an object")

    schema = SCHEMAS.get(entity_type or "")
    if schema is None:
        logger.warning(f"No schema defined for webhook type: {entity_type}")
        return sanitize_payload(entity)

    for field in schema["required"]:
        if entity.get(field) is None:
            raise ValidationError(details=f"Missing required field: {field}")

    return sanitize_payload(entity)
