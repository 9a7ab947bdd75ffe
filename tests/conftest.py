"""
Shared fixtures for the backend test suite.

The content generator is replaced by ``FakeGenerator``, which replays scripted
responses and records every prompt it receives, so no test touches the network.
"""

import json

import pytest

from llm.errors import GeneratorUnavailableError
from mindmap.model import validate_hierarchy


class FakeGenerator:
    """Stand-in for ContentGenerator that returns queued responses in order."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    def queue(self, *responses):
        self.responses.extend(responses)
        return self

    async def generate(self, prompt, attachments=(), system_prompt=None, temperature=0.4, max_tokens=None):
        self.calls.append({"prompt": prompt, "attachments": list(attachments), "max_tokens": max_tokens})
        if not self.responses:
            raise AssertionError("FakeGenerator ran out of scripted responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


SAMPLE_TREE = {
    "title": "Photosynthesis",
    "root": {
        "id": "root",
        "label": "Photosynthesis",
        "note": "How plants make food",
        "children": [
            {
                "id": "light",
                "label": "Light reactions",
                "children": [
                    {"id": "psii", "label": "Photosystem II"},
                    {"id": "psi", "label": "Photosystem I"},
                ],
            },
            {
                "id": "calvin",
                "label": "Calvin cycle",
                "children": [{"id": "rubisco", "label": "RuBisCO"}],
            },
            {"id": "factors", "label": "Limiting factors"},
        ],
    },
}


@pytest.fixture
def fake_generator():
    return FakeGenerator()


@pytest.fixture
def unavailable_generator():
    return FakeGenerator([GeneratorUnavailableError("Incorrect API key provided")])


@pytest.fixture
def sample_tree():
    return json.loads(json.dumps(SAMPLE_TREE))


@pytest.fixture
def sample_document(sample_tree):
    return validate_hierarchy(sample_tree)


@pytest.fixture
def sample_raw(sample_tree):
    return json.dumps(sample_tree)
