from __future__ import annotations

import asyncio

import pytest


class FakeGenerationService:
    """Stands in for the drafting backend: records calls and returns canned results."""

    def __init__(self, generate_result=None, refine_result=None, error=None):
        self.generate_result = generate_result
        self.refine_result = refine_result
        self.error = error
        self.generate_calls = []
        self.refine_calls = []

    async def generate(self, prompt, history=()):
        self.generate_calls.append((prompt, list(history)))
        if self.error is not None:
            raise self.error
        return self.generate_result

    async def refine(self, current_draft, user_request):
        self.refine_calls.append((current_draft, user_request))
        if self.error is not None:
            raise self.error
        return self.refine_result


class BlockingGenerationService(FakeGenerationService):
    """Holds every call until release() so tests can observe the in-flight state."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.released = asyncio.Event()

    def release(self):
        self.released.set()

    async def generate(self, prompt, history=()):
        self.generate_calls.append((prompt, list(history)))
        await self.released.wait()
        return self.generate_result

    async def refine(self, current_draft, user_request):
        self.refine_calls.append((current_draft, user_request))
        await self.released.wait()
        return self.refine_result


@pytest.fixture
def make_service():
    return FakeGenerationService


@pytest.fixture
def make_blocking_service():
    return BlockingGenerationService
