"""Tests for draw.io XML export and import."""

import xml.etree.ElementTree as ET

import pytest

from drawio_builder.codec import escape_attr, format_number, parse_xml, to_xml
from drawio_builder.compression import DecodeError, compress_xml
from drawio_builder.diagram import DiagramModel
from drawio_builder.models import Edge, ModelState, StructuredError, Vertex


def _parse(text: str):
    parsed = parse_xml(text)
    assert not isinstance(parsed, StructuredError), parsed
    return parsed


def test_minimal_document() -> None:
    xml = to_xml(ModelState())
    assert xml.startswith('<mxfile host="drawio-builder-mcp" activeLayerId="1">')
    assert '<diagram id="page-1" name="Page-1">' in xml
    assert '<mxCell id="0"/>' in xml
    assert '<mxCell id="1" parent="0"/>' in xml


def test_vertex_and_edge_elements() -> None:
    model = DiagramModel()
    a = model.add_rectangle(x=10, y=20, text="A")
    b = model.add_rectangle(x=300, y=20, text="B")
    model.add_edge(a.id, b.id, text="link")
    xml = model.to_xml()
    assert f'<mxCell id="{a.id}" value="A"' in xml
    assert 'vertex="1"' in xml
    assert '<mxGeometry x="10" y="20" width="200" height="100" as="geometry"/>' in xml
    assert f'source="{a.id}" target="{b.id}"' in xml
    assert '<mxGeometry relative="1" as="geometry"/>' in xml


def test_group_is_exported_as_container() -> None:
    model = DiagramModel()
    g = model.create_group(style="rounded=1;")
    xml = model.to_xml()
    assert f'<mxCell id="{g.id}" value="" style="rounded=1;container=1;" vertex="1" connectable="0"' in xml


def test_layers_are_exported_under_root() -> None:
    model = DiagramModel()
    model.create_layer("Network")
    xml = model.to_xml()
    assert '<mxCell id="layer-2" value="Network" style="" parent="0"/>' in xml


def test_parent_precedes_child() -> None:
    model = DiagramModel()
    child = model.add_rectangle(text="child")
    group = model.create_group()
    model.add_cell_to_group(child.id, group.id)
    xml = model.to_xml()
    assert xml.index(f'id="{group.id}"') < xml.index(f'id="{child.id}"')


def test_escaping() -> None:
    assert escape_attr("a & b <c> \"d\" 'e'") == "a &amp; b &lt;c&gt; &quot;d&quot; &apos;e&apos;"
    assert escape_attr("line1\nline2") == "line1&#10;line2"


def test_apostrophe_in_label_round_trips() -> None:
    model = DiagramModel()
    model.add_rectangle(text="Bob's <server>")
    xml = model.to_xml()
    assert "Bob&apos;s &lt;server&gt;" in xml
    state, _ = _parse(xml)
    assert state.cells["cell-2"].value == "Bob's <server>"


def test_format_number() -> None:
    assert format_number(100.0) == "100"
    assert format_number(12.5) == "12.5"
    assert format_number(7) == "7"


class TestRoundTrip:
    def _build(self) -> DiagramModel:
        model = DiagramModel()
        lyr = model.create_layer("Apps")
        a = model.add_rectangle(x=0, y=0, text="A")
        model.set_active_layer(lyr.id)
        b = model.add_rectangle(x=300, y=0, text="B", style="ellipse;")
        model.add_edge(a.id, b.id)
        g = model.create_group(text="G")
        model.add_cell_to_group(b.id, g.id)
        return model

    @pytest.mark.parametrize("compress", [False, True])
    def test_round_trip(self, compress: bool) -> None:
        model = self._build()
        state, summary = _parse(model.to_xml(compress=compress))
        assert summary.pages == 1
        assert summary.cells == 4
        assert summary.layers == 2
        assert state.active_layer_id == "layer-2"
        assert state.cells["cell-3"].parent == "cell-5"
        assert state.cells["cell-5"].children == ["cell-3"]
        edge = state.cells["cell-4"]
        assert isinstance(edge, Edge)
        assert (edge.source_id, edge.target_id) == ("cell-2", "cell-3")
        assert state.next_cell_number == 6

    def test_compressed_page_has_no_model_element(self) -> None:
        xml = self._build().to_xml(compress=True)
        page = ET.fromstring(xml).find("diagram")
        assert page is not None
        assert page.find("mxGraphModel") is None
        assert page.text


class TestImport:
    def test_bare_graph_model(self) -> None:
        state, summary = _parse(
            '<mxGraphModel><root><mxCell id="0"/><mxCell id="1" parent="0"/>'
            '<mxCell id="n7" value="x" vertex="1" parent="1">'
            '<mxGeometry x="5" y="6" width="7" height="8" as="geometry"/></mxCell>'
            "</root></mxGraphModel>"
        )
        assert summary.pages == 1
        v = state.cells["n7"]
        assert isinstance(v, Vertex)
        assert (v.x, v.y, v.width, v.height) == (5, 6, 7, 8)
        assert state.next_cell_number == 8

    def test_missing_geometry_uses_defaults(self) -> None:
        state, _ = _parse(
            '<mxGraphModel><root><mxCell id="v" vertex="1" parent="1">'
            '<mxGeometry x="abc" as="geometry"/></mxCell></root></mxGraphModel>'
        )
        v = state.cells["v"]
        assert (v.x, v.y, v.width, v.height) == (0, 0, 200, 100)

    def test_user_object(self) -> None:
        state, _ = _parse(
            '<mxfile><diagram><mxGraphModel><root>'
            '<mxCell id="0"/><mxCell id="1" parent="0"/>'
            '<UserObject id="u1" label="Web &amp; API" tooltip="t">'
            '<mxCell style="rounded=1;" vertex="1" parent="1">'
            '<mxGeometry x="40" y="50" width="60" height="70" as="geometry"/>'
            "</mxCell></UserObject>"
            '<object id="o2" value="Edge">'
            '<mxCell edge="1" parent="1" source="u1" target="u1"/></object>'
            "</root></mxGraphModel></diagram></mxfile>"
        )
        v = state.cells["u1"]
        assert isinstance(v, Vertex)
        assert v.value == "Web & API"
        assert v.style == "rounded=1;"
        assert (v.x, v.width) == (40, 60)
        e = state.cells["o2"]
        assert isinstance(e, Edge)
        assert e.source_id == "u1"

    def test_two_pages_share_a_layer(self) -> None:
        page = (
            '<diagram name="{name}"><mxGraphModel><root>'
            '<mxCell id="0"/><mxCell id="1" parent="0"/>'
            '<mxCell id="2" value="Shared" parent="0"/>'
            '<mxCell id="{cell}" value="{name}" vertex="1" parent="2">'
            '<mxGeometry as="geometry"/></mxCell>'
            "</root></mxGraphModel></diagram>"
        )
        xml = (
            "<mxfile>"
            + page.format(name="P1", cell="10")
            + page.format(name="P2", cell="11")
            + "</mxfile>"
        )
        state, summary = _parse(xml)
        assert summary.pages == 2
        assert [lyr.id for lyr in state.layers] == ["1", "2"]
        assert {"10", "11"} <= set(state.cells)
        assert state.next_cell_number == 12

    def test_later_page_wins_on_id_collision(self) -> None:
        page = (
            '<diagram name="{name}"><mxGraphModel><root>'
            '<mxCell id="5" value="{name}" style="{style}" vertex="1" parent="1">'
            '<mxGeometry x="{x}" as="geometry"/></mxCell>'
            "</root></mxGraphModel></diagram>"
        )
        xml = (
            "<mxfile>"
            + page.format(name="first", style="rounded=1;", x="10")
            + page.format(name="second", style="ellipse;", x="20")
            + "</mxfile>"
        )
        state, summary = _parse(xml)
        assert summary.cells == 1
        cell = state.cells["5"]
        assert (cell.value, cell.style, cell.x) == ("second", "ellipse;", 20)

    def test_user_object_outer_attributes_win(self) -> None:
        state, _ = _parse(
            '<mxGraphModel><root>'
            '<mxCell id="g" style="container=1;" vertex="1" parent="1"><mxGeometry as="geometry"/></mxCell>'
            '<UserObject id="u" label="U" style="" parent="g">'
            '<mxCell style="rounded=1;" vertex="1" parent="1"><mxGeometry as="geometry"/></mxCell>'
            "</UserObject></root></mxGraphModel>"
        )
        cell = state.cells["u"]
        assert cell.style == ""
        assert cell.parent == "g"
        assert state.cells["g"].children == ["u"]

    def test_swimlane_is_group(self) -> None:
        state, _ = _parse(
            '<mxGraphModel><root>'
            '<mxCell id="s" style="swimlane;" vertex="1" parent="1"><mxGeometry as="geometry"/></mxCell>'
            '<mxCell id="c" vertex="1" parent="s"><mxGeometry as="geometry"/></mxCell>'
            "</root></mxGraphModel>"
        )
        assert state.cells["s"].is_group
        assert state.cells["s"].children == ["c"]

    def test_unknown_active_layer_falls_back(self) -> None:
        state, _ = _parse('<mxfile activeLayerId="missing"><diagram/></mxfile>')
        assert state.active_layer_id == "1"

    def test_empty_document(self) -> None:
        result = parse_xml("   ")
        assert isinstance(result, StructuredError)
        assert result.code == "EMPTY_XML"

    def test_not_drawio(self) -> None:
        result = parse_xml("<html></html>")
        assert isinstance(result, StructuredError)
        assert result.code == "INVALID_XML"

    def test_malformed(self) -> None:
        result = parse_xml("<mxfile><diagram>")
        assert isinstance(result, StructuredError)
        assert result.code == "INVALID_XML"

    def test_bad_compressed_payload_raises(self) -> None:
        with pytest.raises(DecodeError):
            parse_xml("<mxfile><diagram>%%%notbase64%%%</diagram></mxfile>")

    def test_compressed_payload_that_is_not_xml(self) -> None:
        result = parse_xml(f"<mxfile><diagram>{compress_xml('<mxGraphModel>')}</diagram></mxfile>")
        assert isinstance(result, StructuredError)
        assert result.code == "INVALID_XML"
