import pytest

from core.domain import InputError
from services.document_normalizer import normalize_document


def test_nested_camel_case_record():
    payload = {
        "metadata": {
            "id": "doc_1",
            "filename": "lease.pdf",
            "chunked": True,
            "hasEmbeddings": True,
            "hasExtractedText": True,
        },
        "content": {"content": "preview text", "extractedText": "full extracted text"},
        "chunks": [
            {"chunkNumber": 2, "content": "second"},
            {"chunkNumber": 1, "content": "first", "embedding": [0.1, 0.2]},
        ],
    }

    doc = normalize_document(payload)

    assert doc.id == "doc_1"
    assert doc.filename == "lease.pdf"
    assert doc.raw_content == "preview text"
    assert doc.extracted_text == "full extracted text"
    assert doc.is_chunked_externally
    assert doc.has_stored_embeddings
    assert [p.text for p in doc.chunks] == ["first", "second"]
    assert doc.chunks[0].embedding == [0.1, 0.2]


def test_flat_snake_case_record():
    payload = {
        "id": "doc_2",
        "filename": "notes.txt",
        "content": "plain text",
        "structured_data": {"parties": ["A", "B"]},
    }

    doc = normalize_document(payload)

    assert doc.id == "doc_2"
    assert doc.raw_content == "plain text"
    assert doc.structured_facts == {"parties": ["A", "B"]}
    assert not doc.is_chunked_externally
    assert not doc.has_stored_embeddings


def test_structured_facts_prefer_analysis_then_content_then_metadata():
    payload = {
        "metadata": {"id": "d", "structuredData": {"from": "metadata"}},
        "content": {"content": "x", "structuredData": {"from": "content"}},
        "analysis": {"structuredData": {"from": "analysis"}},
    }
    assert normalize_document(payload).structured_facts == {"from": "analysis"}

    del payload["analysis"]
    assert normalize_document(payload).structured_facts == {"from": "content"}

    del payload["content"]["structuredData"]
    assert normalize_document(payload).structured_facts == {"from": "metadata"}


def test_extracted_text_ignored_when_flag_is_false():
    payload = {
        "metadata": {"id": "d", "hasExtractedText": False},
        "content": {"content": "raw", "extractedText": "stale"},
    }

    assert normalize_document(payload).extracted_text is None


def test_missing_id_gets_generated_or_supplied_id():
    assert normalize_document({"content": "text"}, document_id="given").id == "given"
    assert normalize_document({"content": "text"}).id


def test_non_object_payload_is_rejected():
    with pytest.raises(InputError):
        normalize_document(["not", "a", "record"])
