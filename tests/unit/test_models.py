"""
Tests for the family models.
"""

import json

import pytest
from pydantic import ValidationError

from cosmos_quickstart.models import Child, Family
from cosmos_quickstart.samples import andersen_family, wakefield_family


class TestFamily:
    """Test serialization of family records."""

    def test_document_uses_store_property_names(self):
        document = andersen_family().to_document()

        assert document["id"] == "Andersen.1"
        assert document["LastName"] == "Andersen"
        assert document["IsRegistered"] is False
        assert document["Address"] == {"State": "WA", "County": "King", "City": "Seattle"}
        assert document["Children"][0]["Pets"] == [{"GivenName": "Fluffy"}]
        assert document["Parents"][0] == {"FirstName": "Thomas", "FamilyName": None}

    def test_partition_key_is_last_name(self):
        assert wakefield_family().partition_key == "Wakefield"

    def test_from_document_ignores_system_properties(self):
        document = wakefield_family().to_document()
        document.update({"_rid": "abc", "_ts": 1700000000, "_self": "dbs/x/", "_etag": '"0001"'})

        family = Family.from_document(document)

        assert family.etag == '"0001"'
        assert family.children[1].first_name == "Lisa"
        assert "_rid" not in family.to_document()
        assert "_etag" not in family.to_document()

    def test_str_is_json(self):
        family = Family.from_document({**andersen_family().to_document(), "_etag": '"0001"'})

        data = json.loads(str(family))

        assert data["id"] == "Andersen.1"
        assert "_etag" not in data

    def test_populate_by_field_name_or_alias(self):
        by_alias = Family.model_validate({"id": "Smith.1", "LastName": "Smith"})
        by_name = Family(id="Smith.1", last_name="Smith")

        assert by_alias == by_name
        assert by_alias.children == []
        assert by_alias.address is None

    @pytest.mark.parametrize("document", [{"id": "", "LastName": "Smith"}, {"id": "Smith.1", "LastName": ""}])
    def test_key_fields_required(self, document):
        with pytest.raises(ValidationError):
            Family.from_document(document)


class TestChild:
    """Test child parsing."""

    def test_null_pets_are_empty(self):
        child = Child.model_validate({"FirstName": "Lisa", "Gender": "female", "Grade": 1, "Pets": None})

        assert child.pets == []


class TestSamples:
    """Test the seeded families."""

    def test_samples_are_fresh_copies(self):
        first = wakefield_family()
        first.is_registered = False

        assert wakefield_family().is_registered is True

    def test_wakefield_children(self):
        family = wakefield_family()

        assert [c.first_name for c in family.children] == ["Jesse", "Lisa"]
        assert family.children[0].grade == 8
        assert [p.given_name for p in family.children[0].pets] == ["Goofy", "Shadow"]
        assert family.children[1].pets == []
