from __future__ import annotations

import asyncio

import pytest

from docpreview.errors import RefinementServiceError, ServiceError
from docpreview.refinement import RefinementController

DRAFT = "# LEASE\n\n1. Term. The term begins on January 1, 2024."


def test_returns_service_text(make_service):
    service = make_service(refine_result="# LEASE\n\n1. Term. The term begins on December 1, 2024.")
    controller = RefinementController(service)
    refined = asyncio.run(controller.refine(DRAFT, "Change the date to December 1, 2024"))
    assert refined.endswith("December 1, 2024.")
    assert service.refine_calls == [(DRAFT, "Change the date to December 1, 2024")]
    assert not controller.is_busy


@pytest.mark.parametrize("instruction", ["", "   ", "\n\t", None])
def test_blank_instruction_never_calls_service(make_service, instruction):
    service = make_service(refine_result="x")
    assert asyncio.run(RefinementController(service).refine(DRAFT, instruction)) is None
    assert service.refine_calls == []


def test_empty_draft_does_not_block(make_service):
    service = make_service(refine_result="1. New clause.")
    assert asyncio.run(RefinementController(service).refine("", "add a clause")) == "1. New clause."
    assert service.refine_calls == [("", "add a clause")]


def test_service_failure_raises_and_releases_token(make_service):
    service = make_service(error=ServiceError(detail="upstream timeout", status_code=504))
    controller = RefinementController(service)
    with pytest.raises(RefinementServiceError) as exc:
        asyncio.run(controller.refine(DRAFT, "tighten clause 1"))
    assert exc.value.message == "Failed to refine document. Please try again."
    assert exc.value.detail == "upstream timeout"
    assert not controller.is_busy


def test_non_text_result_is_a_service_error(make_service):
    controller = RefinementController(make_service(refine_result=None))
    with pytest.raises(RefinementServiceError):
        asyncio.run(controller.refine(DRAFT, "tighten clause 1"))
    assert not controller.is_busy


def test_single_flight(make_blocking_service):
    async def scenario():
        service = make_blocking_service(refine_result="refined")
        controller = RefinementController(service)
        first = asyncio.create_task(controller.refine(DRAFT, "first"))
        await asyncio.sleep(0)
        assert controller.is_busy
        assert await controller.refine(DRAFT, "second") is None
        service.release()
        result = await first
        return service, controller, result

    service, controller, result = asyncio.run(scenario())
    assert result == "refined"
    assert service.refine_calls == [(DRAFT, "first")]
    assert not controller.is_busy
