"""Unit tests for Identity."""

from __future__ import annotations

import pytest

from cdfutils.bulk import Identity, InstanceId


class TestIdentity:
    """Test Identity construction, equality and wire form."""

    def test_of_int_and_str(self):
        """Test that ints become ids and strings external ids."""
        assert Identity.of(5) == Identity(id=5)
        assert Identity.of("5") == Identity(external_id="5")

    def test_equality_is_by_tag(self):
        """Test that id 5 and external id "5" are different keys."""
        keys = {Identity.of(5), Identity.of("5"), Identity(id=5)}

        assert len(keys) == 2

    def test_of_instance_id(self):
        """Test instance id identities."""
        idt = Identity.of(InstanceId("space", "node"))

        assert idt.to_dict() == {"instanceId": {"space": "space", "externalId": "node"}}
        assert str(idt) == "instanceId=space:node"

    def test_of_identity_returns_same(self):
        """Test that an Identity passes through unchanged."""
        idt = Identity(id=1)
        assert Identity.of(idt) is idt

    def test_requires_exactly_one_field(self):
        """Test that zero or two set fields are rejected."""
        with pytest.raises(ValueError):
            Identity()
        with pytest.raises(ValueError):
            Identity(id=1, external_id="a")

    def test_rejects_bool(self):
        """Test that bool is not accepted as an id."""
        with pytest.raises(TypeError):
            Identity(id=True)
        with pytest.raises(TypeError):
            Identity.of(1.5)

    def test_from_item_prefers_id(self):
        """Test that the internal id wins when both are set."""
        assert Identity.from_item(1, "a") == Identity(id=1)
        assert Identity.from_item(None, "a") == Identity(external_id="a")
        assert Identity.from_item(None, None) is None

    def test_to_dict(self):
        """Test wire form of ids and external ids."""
        assert Identity(id=3).to_dict() == {"id": 3}
        assert Identity(external_id="x").to_dict() == {"externalId": "x"}
