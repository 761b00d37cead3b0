"""Content domain: collection models, form schemas, and persistence.

Provides the record and form types for every collection the admin panel
edits, the slug generator, the repository interface with a JSON-backed
store, and the list-view helpers (search, bulk actions, CSV export).
"""

from sitecms.content.entities import (
    CONTENT_ENTITIES,
    EntitySpec,
    EntityType,
    all_entities,
    get_entity,
)
from sitecms.content.lifecycle import apply_publish_rules, prepare_payload, stamp_audit
from sitecms.content.models import AppRole, ContentStatus
from sitecms.content.repository import Backend, ContentRepository
from sitecms.content.schemas import clean_form, validate_field, validate_form
from sitecms.content.slugs import slugify
from sitecms.content.store import ContentStore

__all__ = [
    "CONTENT_ENTITIES",
    "AppRole",
    "Backend",
    "ContentRepository",
    "ContentStatus",
    "ContentStore",
    "EntitySpec",
    "EntityType",
    "all_entities",
    "apply_publish_rules",
    "clean_form",
    "get_entity",
    "prepare_payload",
    "slugify",
    "stamp_audit",
    "validate_field",
    "validate_form",
]
