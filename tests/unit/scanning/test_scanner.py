import io

import pytest
from defusedxml.common import EntitiesForbidden

from xml_transform.errors import ScanError
from xml_transform.observability import RecordingMetricsHook, names
from xml_transform.scanning.models import Offset
from xml_transform.scanning.scanner import OffsetScanner, scan, scan_async


def _spans(doc: str, tag: str, **kwargs) -> list[str]:
    data = doc.encode()
    result = scan(io.BytesIO(data), tag, **kwargs)
    return [data[o.start : o.end].decode() for o in result.offsets]


class TestScan:
    def test_offsets_cover_each_record(self, sample_doc: str) -> None:
        """Each offset is the exact element, multi-byte text included."""
        assert _spans(sample_doc, "bar") == [
            "<bar>๑</bar>",
            '<bar attr="sma">foolalalfar</bar>',
            "<bar><![CDATA[2&>1]]></bar>",
        ]

    def test_offsets_are_byte_positions(self, sample_doc: str) -> None:
        data = sample_doc.encode()
        result = scan(io.BytesIO(data), "bar")

        first = data.index(b"<bar>")
        assert result.offsets[0] == Offset(first, first + len("<bar>๑</bar>".encode()))

    def test_end_position_is_document_length(self, sample_doc: str) -> None:
        data = sample_doc.encode()
        result = scan(io.BytesIO(data), "bar")

        assert result.end_position == len(data)

    def test_single_byte_chunks_give_same_offsets(self, sample_doc: str) -> None:
        """Tags and multi-byte characters split across reads."""
        data = sample_doc.encode()
        whole = scan(io.BytesIO(data), "bar")
        tiny = scan(io.BytesIO(data), "bar", chunk_size=1)

        assert tiny == whole

    def test_offsets_are_ordered_and_disjoint(self, sample_doc: str) -> None:
        result = scan(io.BytesIO(sample_doc.encode()), "bar")

        for prev, nxt in zip(result.offsets, result.offsets[1:]):
            assert prev.start < prev.end <= nxt.start
        assert result.offsets[-1].end <= result.end_position

    def test_no_matches(self) -> None:
        data = b"<root><other>1</other></root>\n"
        result = scan(io.BytesIO(data), "bar")

        assert result.offsets == ()
        assert result.end_position == len(data)

    def test_self_closing_tags(self) -> None:
        doc = '<root><bar a="x/>y"/><bar>t</bar><bar /></root>'
        assert _spans(doc, "bar") == ['<bar a="x/>y"/>', "<bar>t</bar>", "<bar />"]

    def test_case_insensitive_match(self) -> None:
        doc = "<root><BAR>1</BAR><Bar/><bar>3</bar></root>"
        assert _spans(doc, "bar") == ["<BAR>1</BAR>", "<Bar/>", "<bar>3</bar>"]
        assert _spans(doc, "BaR") == ["<BAR>1</BAR>", "<Bar/>", "<bar>3</bar>"]

    def test_other_tags_inside_record_do_not_interfere(self) -> None:
        doc = "<root><bar><baz>1</baz><baz/></bar><barn>x</barn></root>"
        assert _spans(doc, "bar") == ["<bar><baz>1</baz><baz/></bar>"]

    def test_whitespace_inside_closing_tag(self) -> None:
        doc = '<root><bar k = "v" >1</bar   ></root>'
        assert _spans(doc, "bar") == ['<bar k = "v" >1</bar   >']

    def test_metrics_recorded(self, sample_doc: str) -> None:
        hook = RecordingMetricsHook()
        scan(io.BytesIO(sample_doc.encode()), "bar", metrics_hook=hook)

        assert hook.gauges[names.SCAN_RECORDS_FOUND] == 3
        assert hook.counters[names.SCAN_BYTES] == len(sample_doc.encode())
        assert len(hook.latencies[names.SCAN_DURATION]) == 1

    def test_rejects_bad_chunk_size(self) -> None:
        with pytest.raises(ValueError, match="chunk_size must be > 0"):
            scan(io.BytesIO(b"<a/>"), "a", chunk_size=0)

    @pytest.mark.asyncio
    async def test_scan_async_matches_scan(self, sample_doc: str) -> None:
        data = sample_doc.encode()
        assert await scan_async(io.BytesIO(data), "bar") == scan(io.BytesIO(data), "bar")


class TestNamespaces:
    def test_inherited_declarations_recorded(self) -> None:
        doc = (
            '<root xmlns="urn:d" xmlns:x="urn:x">'
            '<x:bar>1</x:bar><g xmlns:x="urn:y"><x:bar/></g><x:bar>3</x:bar>'
            "</root>"
        )
        result = scan(io.BytesIO(doc.encode()), "x:bar")

        assert [dict(o.namespaces) for o in result.offsets] == [
            {None: "urn:d", "x": "urn:x"},
            {None: "urn:d", "x": "urn:y"},
            {None: "urn:d", "x": "urn:x"},
        ]

    def test_own_declarations_not_inherited(self) -> None:
        doc = '<root><x:bar xmlns:x="urn:x">1</x:bar></root>'
        (offset,) = scan(io.BytesIO(doc.encode()), "x:bar").offsets

        assert dict(offset.namespaces) == {}

    def test_empty_default_namespace_undeclares(self) -> None:
        doc = '<root xmlns="urn:d"><g xmlns=""><bar/></g></root>'
        (offset,) = scan(io.BytesIO(doc.encode()), "bar").offsets

        assert dict(offset.namespaces) == {}

    def test_records_in_one_scope_share_declarations(self) -> None:
        doc = '<root xmlns:x="urn:x"><bar/><bar/></root>'
        first, second = scan(io.BytesIO(doc.encode()), "bar").offsets

        assert first.namespaces is second.namespaces

    def test_namespaces_do_not_affect_equality(self) -> None:
        assert Offset(0, 5, {"x": "urn:x"}) == Offset(0, 5)


class TestScanFailures:
    def test_malformed_document(self) -> None:
        with pytest.raises(ScanError) as excinfo:
            scan(io.BytesIO(b">new <now know how"), "bar")

        err = excinfo.value
        assert str(err).startswith("Failed to scan input XML: ")
        assert err.line == 1
        assert err.column is not None
        assert "\nLine: 1\n" in str(err)

    def test_truncated_document(self) -> None:
        with pytest.raises(ScanError, match="Failed to scan input XML"):
            scan(io.BytesIO(b"<foo><bar>1</bar>"), "bar")

    def test_empty_document(self) -> None:
        with pytest.raises(ScanError):
            scan(io.BytesIO(b""), "bar")

    def test_nested_target_tag_is_rejected(self) -> None:
        doc = b"<root><bar><bar>1</bar></bar></root>"
        with pytest.raises(ScanError, match="nested <bar>"):
            scan(io.BytesIO(doc), "bar")

    def test_entity_declarations_forbidden(self) -> None:
        doc = b'<!DOCTYPE foo [<!ENTITY x "y">]><foo><bar>&x;</bar></foo>'
        with pytest.raises(ScanError) as excinfo:
            scan(io.BytesIO(doc), "bar")

        assert isinstance(excinfo.value.__cause__, EntitiesForbidden)

    def test_entity_declarations_allowed_when_asked(self) -> None:
        doc = b'<!DOCTYPE foo [<!ENTITY x "y">]><foo><bar>&x;</bar></foo>'
        result = scan(io.BytesIO(doc), "bar", forbid_entities=False)

        (offset,) = result.offsets
        assert doc[offset.start : offset.end] == b"<bar>&x;</bar>"


class TestOffsetScanner:
    def test_feed_after_close_raises(self) -> None:
        scanner = OffsetScanner("a")
        scanner.feed(b"<a/>")
        scanner.close()

        with pytest.raises(RuntimeError, match="already closed"):
            scanner.feed(b"<a/>")

    def test_consumed_counts_bytes(self) -> None:
        scanner = OffsetScanner("a")
        scanner.feed("<a>é</a>".encode())

        assert scanner.consumed == len("<a>é</a>".encode())

    def test_rejects_empty_tag(self) -> None:
        with pytest.raises(ValueError, match="non-empty"):
            OffsetScanner("")
