"""Tests for options schema helpers."""
import pytest

from junos_reconciler.engine import StatementParser, from_dict, to_dict
from junos_reconciler.engine.schema import (
    Kind,
    field_specs,
    identity_fields,
    is_set,
    top_level_keywords,
)
from junos_reconciler.resources import (
    RESOURCE_TYPES,
    BgpGroupOptions,
    NatStaticRuleOptions,
    StaticNatThen,
    VstpInterfaceOptions,
    VstpVlanOptions,
)
from junos_reconciler.resources.bgp import Family, PrefixLimit


class TestFieldSpecs:
    """Tests for schema introspection."""

    def test_identity_fields(self):
        """Fields without grammar identify the resource."""
        assert identity_fields(BgpGroupOptions) == ["name", "routing_instance"]
        assert identity_fields(VstpInterfaceOptions) == ["name", "routing_instance", "vlan", "vlan_group"]

    def test_declaration_order(self):
        """type comes before the shared BGP attributes."""
        names = [name for name, _ in field_specs(BgpGroupOptions)]
        assert names[0] == "type"
        assert names.index("hold_time") < names.index("passive")

    def test_kinds(self):
        """Helpers set the field kind."""
        specs = dict(field_specs(BgpGroupOptions))
        assert specs["passive"].kind == Kind.FLAG
        assert specs["hold_time"].kind == Kind.INT
        assert specs["import_"].keyword == "import"
        assert specs["family_inet"].kind == Kind.KEYED
        assert specs["family_inet"].key == "nlri_type"

    def test_is_set(self):
        """Zero is set, None, False and empty lists are not."""
        specs = dict(field_specs(BgpGroupOptions))
        assert is_set(specs["local_preference"], 0)
        assert not is_set(specs["local_preference"], None)
        assert not is_set(specs["passive"], False)
        assert not is_set(specs["export"], [])

    def test_top_level_keywords(self):
        """Keywords are reduced to their first token, once each."""
        keywords = top_level_keywords(BgpGroupOptions)
        assert keywords[0] == "type"
        assert keywords.count("family") == 1
        assert keywords.count("metric-out") == 1
        assert "neighbor" not in keywords
        assert top_level_keywords(NatStaticRuleOptions) == ["match", "then"]


class TestFromDict:
    """Tests for building options from plain data."""

    def test_nested(self):
        """Blocks and keyed entries are converted recursively."""
        options = from_dict(BgpGroupOptions, {
            "name": "G1",
            "family_inet": [{"nlri_type": "unicast", "prefix_limit": {"maximum": 10}}],
        })
        assert options.family_inet == [Family(nlri_type="unicast", prefix_limit=PrefixLimit(maximum=10))]

    def test_discriminated_block(self):
        """Discriminators are plain fields of the block."""
        options = from_dict(NatStaticRuleOptions, {
            "rule_set": "rs1",
            "name": "r1",
            "then": {"type": "prefix", "prefix": "10.0.0.0/24"},
        })
        assert options.then == StaticNatThen(type="prefix", prefix="10.0.0.0/24")

    def test_numbers_for_text(self):
        """Bare numbers become strings where text is expected."""
        options = from_dict(BgpGroupOptions, {"name": "G1", "peer_as": 65001, "export": [1, "p2"]})
        assert options.peer_as == "65001"
        assert options.export == ["1", "p2"]
        assert from_dict(VstpVlanOptions, {"vlan_id": 100}).vlan_id == "100"

    def test_keyword_field_names(self):
        """import is accepted for import_ and written back as import."""
        options = from_dict(BgpGroupOptions, {"name": "G1", "import": ["policy-in"]})
        assert options.import_ == ["policy-in"]
        assert from_dict(BgpGroupOptions, {"name": "G1", "import_": ["p1"]}).import_ == ["p1"]
        assert to_dict(options)["import"] == ["policy-in"]
        assert "import_" not in to_dict(options)

    def test_unknown_field(self):
        """Unknown names are rejected."""
        with pytest.raises(ValueError, match="unknown field\\(s\\) for BgpGroupOptions: holdtime"):
            from_dict(BgpGroupOptions, {"name": "G1", "holdtime": 30})

    def test_to_dict_omits_unset(self):
        """to_dict keeps identity and set fields only."""
        options = BgpGroupOptions(name="G1", hold_time=30, family_inet=[Family(nlri_type="flow")])
        assert to_dict(options) == {
            "name": "G1",
            "routing_instance": "default",
            "type": "external",
            "family_inet": [{"nlri_type": "flow"}],
            "hold_time": 30,
        }
        assert from_dict(BgpGroupOptions, to_dict(options)) == options


def _int_fields(cls, seen=None):
    """(class, name, spec) for every ranged number in cls and its nested blocks."""
    seen = set() if seen is None else seen
    if cls in seen:
        return []
    seen.add(cls)
    found = []
    for name, spec in field_specs(cls):
        if spec.kind == Kind.INT and spec.value_range is not None:
            found.append((cls, name, spec))
        elif spec.kind in (Kind.BLOCK, Kind.KEYED):
            found.extend(_int_fields(spec.block, seen))
    return found


class TestSentinels:
    """Tests for the unset value of number fields."""

    def test_range_bounds_are_set_values(self):
        """Every allowed bound is distinct from unset and parses back."""
        parser = StatementParser()
        seen = set()
        checked = 0
        for rtype in RESOURCE_TYPES.values():
            for cls, name, spec in _int_fields(rtype.options, seen):
                assert getattr(cls(), name) is None, f"{cls.__name__}.{name}"
                for bound in spec.value_range:
                    assert is_set(spec, bound), f"{cls.__name__}.{name} {bound}"
                    parsed = parser.parse([f"{spec.keyword} {bound}"], cls)
                    assert getattr(parsed, name) == bound, f"{cls.__name__}.{name} {bound}"
                    checked += 1
        assert checked > 40
