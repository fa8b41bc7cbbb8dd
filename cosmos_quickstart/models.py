"""
Family Models.

Pydantic models for the family records stored by the tutorial. Field
aliases match the document layout in the container (PascalCase properties,
lower-case ``id``).

Author: Cosmos Quickstart Contributors
Date: 2026-10-19
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Parent(BaseModel):
    """A parent in a family.

    Attributes:
        first_name: Given name
        family_name: Family name, if different from the family's last name
    """

    first_name: str = Field(alias="FirstName")
    family_name: Optional[str] = Field(default=None, alias="FamilyName")

    model_config = ConfigDict(populate_by_name=True)


class Pet(BaseModel):
    """A child's pet."""

    given_name: str = Field(alias="GivenName")

    model_config = ConfigDict(populate_by_name=True)


class Child(BaseModel):
    """A child in a family.

    Attributes:
        first_name: Given name
        family_name: Family name, if different from the family's last name
        gender: Gender tag
        grade: School grade
        pets: Pets, in order
    """

    first_name: str = Field(alias="FirstName")
    family_name: Optional[str] = Field(default=None, alias="FamilyName")
    gender: str = Field(alias="Gender")
    grade: int = Field(alias="Grade")
    pets: List[Pet] = Field(default_factory=list, alias="Pets")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("pets", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class Address(BaseModel):
    """Postal address of a family."""

    state: str = Field(alias="State")
    county: str = Field(alias="County")
    city: str = Field(alias="City")

    model_config = ConfigDict(populate_by_name=True)


class Family(BaseModel):
    """A family record.

    ``(id, last_name)`` is the point-lookup key; ``last_name`` is the
    partition key value on every read, write and delete.

    Store system properties (``_rid``, ``_ts``, ...) are ignored when a
    document is parsed, except ``_etag``, which is kept on ``etag`` but
    never written back.

    Attributes:
        id: Record identifier, unique within the container
        last_name: Partition key value
        parents: Parents, in order
        children: Children, in order
        address: Family address
        is_registered: Registration flag
        etag: Entity tag of the stored version, if read from the store
    """

    id: str
    last_name: str = Field(alias="LastName")
    parents: List[Parent] = Field(default_factory=list, alias="Parents")
    children: List[Child] = Field(default_factory=list, alias="Children")
    address: Optional[Address] = Field(default=None, alias="Address")
    is_registered: bool = Field(default=False, alias="IsRegistered")
    etag: Optional[str] = Field(default=None, alias="_etag", exclude=True)

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("id", "last_name")
    @classmethod
    def validate_key(cls, v: str) -> str:
        """Key fields must be non-empty."""
        if not v:
            raise ValueError("id and LastName cannot be empty")
        return v

    @property
    def partition_key(self) -> str:
        return self.last_name

    def to_document(self) -> Dict[str, Any]:
        """Serialize to the document body stored in the container."""
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Family":
        """Parse a document body returned by the store."""
        return cls.model_validate(document)

    def __str__(self) -> str:
        return self.model_dump_json(by_alias=True)
