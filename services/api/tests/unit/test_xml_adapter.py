"""
Unit tests for OSCAL XML conversion.

Covers the element-to-JSON rules, prose serialization and rejection of
malformed or hostile XML.
"""

import pytest

from oscal_workbench.core.exceptions import MalformedInputError
from oscal_workbench.services.controls import count_controls
from oscal_workbench.services.parser import parse_oscal_document
from oscal_workbench.services.xml_adapter import xml_to_json

NS = 'xmlns="http://csrc.nist.gov/ns/oscal/1.0"'


class TestXmlToJson:
    """Test cases for xml_to_json."""

    def test_root_wrapped_under_local_name(self, sample_catalog_xml):
        """Test the root element name becomes the envelope key, namespace stripped."""
        result = xml_to_json(sample_catalog_xml)

        assert list(result) == ["catalog"]
        catalog = result["catalog"]
        assert catalog["uuid"] == "7b3c1a50-0000-4000-8000-000000000001"
        assert "xmlns" not in catalog

    def test_metadata_leaves_are_text(self, sample_catalog_xml):
        """Test leaf elements become their trimmed text."""
        metadata = xml_to_json(sample_catalog_xml)["catalog"]["metadata"]

        assert metadata["title"] == "Sample Catalog"
        assert metadata["oscal-version"] == "1.1.2"
        assert metadata["last-modified"] == "2024-01-15T10:30:00Z"

    def test_singular_elements_become_plural_arrays(self, sample_catalog_xml):
        """Test mapped element names always produce arrays, even for one child."""
        catalog = xml_to_json(sample_catalog_xml)["catalog"]

        assert len(catalog["groups"]) == 1
        group = catalog["groups"][0]
        assert group["id"] == "ac"
        assert group["class"] == "family"
        assert [c["id"] for c in group["controls"]] == ["ac-1", "ac-2"]
        assert group["controls"][0]["params"] == [{"id": "ac-01_odp.01", "label": "frequency"}]

    def test_insert_serialized_as_placeholder(self, sample_catalog_xml):
        """Test <insert> becomes a parameter placeholder inside prose."""
        control = xml_to_json(sample_catalog_xml)["catalog"]["groups"][0]["controls"][0]

        part = control["parts"][0]
        assert part["name"] == "statement"
        assert part["prose"] == "<p>Review the policy {{ insert: param, ac-01_odp.01 }}.</p>"

    def test_insert_type_defaults_to_param(self):
        """Test an insert without a type attribute is treated as a param."""
        xml = f'<part {NS} name="item"><p>Use <insert id-ref="x-1"/> here</p></part>'

        assert xml_to_json(xml)["part"]["prose"] == "<p>Use {{ insert: param, x-1 }} here</p>"

    def test_insert_in_choice_serialized(self):
        """Test a choice holding an <insert> becomes a placeholder string."""
        xml = (
            f'<param {NS} id="ac-07_odp.02"><select>'
            "<choice>lock the account until released by an administrator</choice>"
            '<choice>lock the account for <insert type="param" id-ref="ac-07_odp.01"/></choice>'
            "</select></param>"
        )

        assert xml_to_json(xml)["param"]["select"]["choice"] == [
            "lock the account until released by an administrator",
            "lock the account for {{ insert: param, ac-07_odp.01 }}",
        ]

    def test_inline_markup_in_title_serialized(self):
        """Test inline elements in a title stay in the string."""
        xml = f'<control {NS} id="ac-20"><title>Use of <em>External</em> Systems</title></control>'

        assert xml_to_json(xml)["control"]["title"] == "Use of <em>External</em> Systems"

    def test_converted_catalog_parses(self, sample_catalog_xml):
        """Test XML output feeds the document parser and keeps every control."""
        result = parse_oscal_document(xml_to_json(sample_catalog_xml))

        assert result.success is True
        assert count_controls(result.document.document) == 3

    def test_prose_field_with_markup_serialized(self):
        """Test remarks holding XHTML become an HTML string with escaped text."""
        xml = f"<risk {NS}><remarks><p>One</p><p>Two &amp; more</p><hr/></remarks></risk>"

        assert xml_to_json(xml)["risk"]["remarks"] == "<p>One</p><p>Two &amp; more</p><hr/>"

    def test_prose_field_without_markup_is_text(self):
        """Test a plain description is its trimmed text."""
        xml = f"<risk {NS}><description>\n   Plain text   \n</description></risk>"

        assert xml_to_json(xml)["risk"]["description"] == "Plain text"

    def test_attribute_values_escaped_in_markup(self):
        """Test attribute values are escaped when serializing markup."""
        xml = f'<part {NS} name="a"><p><a href="https://x.test/?a=1&amp;b=2">link</a></p></part>'

        assert xml_to_json(xml)["part"]["prose"] == (
            '<p><a href="https://x.test/?a=1&amp;b=2">link</a></p>'
        )

    def test_empty_element_becomes_empty_object(self):
        """Test an element with no attributes or content becomes {}."""
        xml = f'<import {NS} href="catalog.xml"><include-all/></import>'

        assert xml_to_json(xml)["import"] == {"href": "catalog.xml", "include-all": {}}

    def test_attributes_with_text_use_text_key(self):
        """Test a leaf with attributes keeps its text under _text."""
        xml = (
            f"<system-characteristics {NS}>"
            '<system-id identifier-type="https://ietf.org/rfc/rfc4122">S-1</system-id>'
            "</system-characteristics>"
        )

        assert xml_to_json(xml)["system-characteristics"]["system-ids"] == [
            {"identifier-type": "https://ietf.org/rfc/rfc4122", "_text": "S-1"}
        ]

    def test_repeated_unmapped_elements_become_array(self):
        """Test repeated unknown siblings are grouped into an array."""
        xml = f"<thing {NS}><alias>a</alias><alias>b</alias><note>n</note></thing>"

        assert xml_to_json(xml)["thing"] == {"alias": ["a", "b"], "note": "n"}

    def test_mixed_content_yields_prose_and_structure(self):
        """Test XHTML blocks next to structural children produce a prose key."""
        xml = f'<part {NS} name="item"><title>Item</title><p>Body</p><prop name="k" value="v"/></part>'

        assert xml_to_json(xml)["part"] == {
            "name": "item",
            "prose": "<p>Body</p>",
            "title": "Item",
            "props": [{"name": "k", "value": "v"}],
        }

    def test_malformed_xml_rejected(self):
        """Test unparseable XML raises MalformedInputError."""
        with pytest.raises(MalformedInputError) as exc_info:
            xml_to_json("<catalog><unclosed></catalog>")

        assert exc_info.value.message.startswith("XML parse error:")
        assert exc_info.value.error_code == "MALFORMED_INPUT"

    def test_entity_expansion_rejected(self):
        """Test documents declaring entities are rejected as parse failures."""
        xml = (
            '<?xml version="1.0"?>'
            '<!DOCTYPE catalog [<!ENTITY lol "lol"><!ENTITY lol2 "&lol;&lol;&lol;">]>'
            "<catalog>&lol2;</catalog>"
        )

        with pytest.raises(MalformedInputError) as exc_info:
            xml_to_json(xml)

        assert exc_info.value.message.startswith("XML parse error:")
