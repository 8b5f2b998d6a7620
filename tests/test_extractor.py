from __future__ import annotations

import asyncio

import httpx
import pytest

from docpreview.details import DetailStore
from docpreview.errors import ExtractionServiceError, ServiceError
from docpreview.extractor import (
    DetailExtractor,
    ExtractionStage,
    parse_details_from_text,
    parse_extraction_response,
)
from docpreview.llm_client import HttpGenerationClient

CONTENT = "RESIDENTIAL LEASE AGREEMENT between Alice Smith (Landlord) and Bob Jones (Tenant) " * 3


def test_strict_json_inside_prose():
    response = 'Here you go:\n```json\n{"Document Type": "Lease", "Party 1 Name": "Alice"}\n```\nThanks!'
    outcome = parse_extraction_response(response, CONTENT)
    assert outcome.stage is ExtractionStage.STRICT_JSON
    assert outcome.details == {"Document Type": "Lease", "Party 1 Name": "Alice"}


def test_strict_json_values_become_strings():
    response = '{"Consideration": 1500, "Governing Law": null, "Renewable": true, "Parties": ["A", "B"]}'
    outcome = parse_extraction_response(response, CONTENT)
    assert outcome.details == {
        "Consideration": "1500",
        "Governing Law": "",
        "Renewable": "True",
        "Parties": '["A", "B"]',
    }


def test_trailing_comma_is_repaired():
    outcome = parse_extraction_response('{"Date": "2024-01-01",}', CONTENT)
    assert outcome.stage is ExtractionStage.STRICT_JSON
    assert outcome.details == {"Date": "2024-01-01"}


def test_broken_json_falls_through_to_lines():
    response = "{not json at all}\nDate: 2024-01-01\nGoverning Law - State of NY"
    outcome = parse_extraction_response(response, CONTENT)
    assert outcome.stage is ExtractionStage.HEURISTIC_LINES
    assert outcome.details == {"Date": "2024-01-01", "Governing Law": "State of NY"}


def test_candidate_spans_first_to_last_brace():
    # two separate objects make one unparseable candidate, so line parsing takes over
    outcome = parse_extraction_response('Key A {"a": "1"} and {"b": "2"}', CONTENT)
    assert outcome.stage is ExtractionStage.HEURISTIC_LINES
    assert outcome.details == {'Key A {"a"': '"1"} and {"b": "2"}'}


def test_lines_without_braces():
    outcome = parse_extraction_response("Date: 2024-01-01\nParty 1 Name: Alice", CONTENT)
    assert outcome.stage is ExtractionStage.HEURISTIC_LINES
    assert outcome.details == {"Date": "2024-01-01", "Party 1 Name": "Alice"}


def test_line_parser_prefers_colon_and_trims():
    text = "  Effective Date :  2024-01-01 \r\nTerm - 12 months\nKey:   \n: orphan value\nno separator here\n"
    assert parse_details_from_text(text) == {"Effective Date": "2024-01-01", "Term": "12 months"}


def test_line_parser_splits_on_first_colon():
    assert parse_details_from_text("Signed: 10:30 AM") == {"Signed": "10:30 AM"}


def test_unstructured_response_uses_fallback():
    outcome = parse_extraction_response("Sure! Here's the info you asked for with no structure.", CONTENT)
    assert outcome.stage is ExtractionStage.FALLBACK
    assert outcome.details == {
        "Document Type": "Legal Document",
        "Content Preview": CONTENT[:100] + "...",
    }


def test_non_text_response_uses_fallback():
    outcome = parse_extraction_response(None, "short doc")
    assert outcome.stage is ExtractionStage.FALLBACK
    assert outcome.details["Content Preview"] == "short doc..."


def test_extract_details_merges_json_over_record(make_service):
    store = DetailStore("Lease", {"Notes": "keep me"})
    service = make_service(generate_result='{"Party 1 Name": "Alice", "Date": "2024-05-01"}')
    outcome = asyncio.run(DetailExtractor(service, store).extract_details(CONTENT))

    assert outcome.stage is ExtractionStage.STRICT_JSON
    record = store.snapshot()
    assert record["Party 1 Name"] == "Alice"
    assert record["Date"] == "2024-05-01"
    assert record["Party 2 Name"] == "Jane Doe"
    assert record["Notes"] == "keep me"
    assert record["Document Type"] == "Lease"


def test_extract_details_sends_fixed_prompt_with_empty_history(make_service):
    service = make_service(generate_result="{}")
    asyncio.run(DetailExtractor(service, DetailStore()).extract_details(CONTENT))
    assert len(service.generate_calls) == 1
    prompt, history = service.generate_calls[0]
    assert history == []
    assert CONTENT in prompt
    assert "ONLY the JSON object" in prompt
    for key in ("Document Type", "Party 1 Name", "Party 2 Name", "Date",
                "Property Address", "Consideration", "Governing Law"):
        assert f'"{key}"' in prompt


@pytest.mark.parametrize("content", ["", None])
def test_empty_content_is_a_noop(make_service, content):
    store = DetailStore()
    before = store.snapshot()
    service = make_service(generate_result='{"Date": "x"}')
    assert asyncio.run(DetailExtractor(service, store).extract_details(content)) is None
    assert service.generate_calls == []
    assert store.snapshot() == before


def test_service_error_keeps_record_and_carries_server_message(make_service):
    store = DetailStore()
    before = store.snapshot()
    error = ServiceError(detail="Quota exceeded", status_code=429, server_message="Quota exceeded")
    extractor = DetailExtractor(make_service(error=error), store)
    with pytest.raises(ExtractionServiceError) as exc:
        asyncio.run(extractor.extract_details(CONTENT))
    assert exc.value.message == "Quota exceeded"
    assert exc.value.status_code == 429
    assert store.snapshot() == before
    assert not extractor.is_extracting


def test_service_error_without_message_uses_default(make_service):
    extractor = DetailExtractor(make_service(error=ServiceError()), DetailStore())
    with pytest.raises(ExtractionServiceError) as exc:
        asyncio.run(extractor.extract_details(CONTENT))
    assert exc.value.message == "Failed to extract details. Please try again."


def test_html_error_page_is_not_shown_to_the_user():
    page = "<html><body><h1>502 Bad Gateway</h1><hr>nginx</body></html>"
    transport = httpx.MockTransport(lambda request: httpx.Response(502, text=page))
    service = HttpGenerationClient("http://backend.test/api", transport=transport)
    store = DetailStore()
    before = store.snapshot()
    with pytest.raises(ExtractionServiceError) as exc:
        asyncio.run(DetailExtractor(service, store).extract_details(CONTENT))
    assert exc.value.message == "Failed to extract details. Please try again."
    assert "<h1>502 Bad Gateway</h1>" in exc.value.detail
    assert exc.value.status_code == 502
    assert store.snapshot() == before


def test_second_extraction_while_in_flight_is_ignored(make_blocking_service):
    async def scenario():
        service = make_blocking_service(generate_result='{"Date": "2024-01-01"}')
        extractor = DetailExtractor(service, DetailStore())
        first = asyncio.create_task(extractor.extract_details(CONTENT))
        await asyncio.sleep(0)
        assert extractor.is_extracting
        assert await extractor.extract_details(CONTENT) is None
        service.release()
        outcome = await first
        return service, extractor, outcome

    service, extractor, outcome = asyncio.run(scenario())
    assert outcome.stage is ExtractionStage.STRICT_JSON
    assert len(service.generate_calls) == 1
    assert not extractor.is_extracting
