"""
Record models for harvested CRM data.

Three record types are extracted from the source application:
- Contact: a person row from a contacts list
- Deal: a pipeline card or deal row carrying a monetary value
- Task: an activity row (call, email, meeting or other)

Records are replaced wholesale on merge, so every model is a flat value
object keyed by ``id``. Aliases mirror the stored JSON layout
(``linkedTo`` for tasks).
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RecordType(str, Enum):
    """Record type, also the store key for its collection."""

    CONTACTS = 'contacts'
    DEALS = 'deals'
    TASKS = 'tasks'


class TaskType(str, Enum):
    """Kind of task, inferred from badge or title keywords."""

    CALL = 'call'
    EMAIL = 'email'
    MEETING = 'meeting'
    OTHER = 'other'


class Contact(BaseModel):
    """A person extracted from a contacts view."""

    id: str = Field(..., description='Native row identifier or synthesized fallback')
    name: str = Field(default='', description='Display name')
    email: str = Field(default='', description='Email address')
    phone: str = Field(default='', description='Phone number as displayed')
    tags: list[str] = Field(default_factory=list, description='Badge/tag labels in page order')
    owner: str = Field(default='', description='Account owner shown on the row')

    def is_complete(self) -> bool:
        """A contact needs at least a name or an email."""
        return bool(self.name or self.email)


class Deal(BaseModel):
    """A sales opportunity extracted from a deals or pipeline view."""

    id: str = Field(..., description='Native card identifier or synthesized fallback')
    title: str = Field(default='', description='Deal title')
    value: float = Field(default=0.0, ge=0.0, description='Monetary amount, currency stripped')
    pipeline: str = Field(default='', description='Pipeline name')
    stage: str = Field(default='', description='Pipeline stage')
    contact: str = Field(default='', description='Primary contact')
    owner: str = Field(default='', description='Deal owner')

    def is_complete(self) -> bool:
        """A deal needs a title and a positive value."""
        return bool(self.title) and self.value > 0


class Task(BaseModel):
    """An activity extracted from a tasks view."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    id: str = Field(..., description='Native row identifier or synthesized fallback')
    type: TaskType = Field(default=TaskType.OTHER, description='Task kind')
    title: str = Field(default='', description='Task title')
    due: str = Field(
        default='',
        description='Due text as displayed (relative or absolute, not parsed)',
    )
    assignee: str = Field(default='', description='Person the task is assigned to')
    linked_to: str = Field(
        default='',
        alias='linkedTo',
        description='Linked deal, or the assignee when no deal link exists',
    )

    def is_complete(self) -> bool:
        """A task needs a title of at least three characters."""
        return len(self.title) >= 3

    @property
    def dedup_key(self) -> tuple[str, str]:
        """Within-batch uniqueness key."""
        task_type = self.type.value if isinstance(self.type, TaskType) else self.type
        return (self.title, task_type)


Record = Contact | Deal | Task

RECORD_MODELS: dict[RecordType, type[BaseModel]] = {
    RecordType.CONTACTS: Contact,
    RecordType.DEALS: Deal,
    RecordType.TASKS: Task,
}


def record_to_dict(record: Record) -> dict[str, Any]:
    """Serialize a record using its stored JSON layout."""
    return record.model_dump(mode='json', by_alias=True)


def record_from_dict(record_type: RecordType, data: dict[str, Any]) -> Record:
    """Rebuild a record of the given type from its stored JSON layout."""
    return RECORD_MODELS[record_type].model_validate(data)
