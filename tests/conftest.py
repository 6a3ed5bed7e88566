"""Test fixtures: in-memory services, recording sink, fake sleep/clock, helper handlers.

All tests should use these fixtures for consistency.
"""

import pytest

from stepflow.callbacks import RecordingSink
from stepflow.config import StepflowConfig
from stepflow.services import InMemoryRetrievalService, StaticCompletionService
from stepflow.types import Workflow, WorkflowStep
from stepflow.workflows.executor import WorkflowExecutor
from stepflow.workflows.registry import default_registry

from tests.helpers import REFUND_ANSWER, FakeClock


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def config():
    """Test configuration with safe defaults."""
    return StepflowConfig(
        debug=True,
        audit_log_enabled=False,
        default_llm_model="mock/test-model",
        default_retry_base_delay_ms=10,
    )


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def sleeps():
    """Seconds passed to the executor's sleep, in call order."""
    return []


@pytest.fixture
def fake_sleep(sleeps):
    async def _sleep(seconds):
        sleeps.append(seconds)

    return _sleep


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def retrieval_service():
    """Policy documents for tenant-a plus one shared document."""
    service = InMemoryRetrievalService()
    service.add_document(
        "policies",
        "Refund policy for digital products: full refund within 14 days if not downloaded.",
        {"category": "refund", "product_type": "digital"},
        tenant_id="tenant-a",
    )
    service.add_document(
        "policies",
        "Physical products have a 30 day return window in original packaging.",
        {"category": "refund", "product_type": "physical"},
        tenant_id="tenant-a",
    )
    service.add_document(
        "policies",
        "Contact support at support@example.com for refund requests.",
        {"category": "support"},
    )
    return service


@pytest.fixture
def completion_service():
    return StaticCompletionService({r"refund": REFUND_ANSWER})


@pytest.fixture
def registry(retrieval_service, completion_service, config):
    return default_registry(
        retrieval=retrieval_service,
        completion=completion_service,
        default_model=config.default_llm_model,
    )


@pytest.fixture
def executor(registry, sink, config, fake_sleep, clock):
    return WorkflowExecutor(registry, sink=sink, config=config, sleep=fake_sleep, clock=clock)


@pytest.fixture
def linear_workflow():
    """s1 → s2 → s3, all echo steps."""
    return Workflow(
        id="wf-linear",
        entry_step_id="s1",
        steps=[
            WorkflowStep(id="s1", type="echo", params={"n": 1}, next_step_id="s2"),
            WorkflowStep(id="s2", type="echo", params={"n": 2}, next_step_id="s3"),
            WorkflowStep(id="s3", type="echo", params={"n": 3}),
        ],
    )


@pytest.fixture
def rag_workflow():
    """Retrieval → completion, the canonical question-answering flow."""
    return Workflow.model_validate({
        "id": "wf-rag",
        "version": 2,
        "name": "Refund answer",
        "entryStepId": "search",
        "steps": [
            {
                "id": "search",
                "type": "retrieval",
                "params": {
                    "collectionId": "policies",
                    "query": "{{input.question}}",
                    "topK": 2,
                },
                "nextStepId": "answer",
            },
            {
                "id": "answer",
                "type": "completion",
                "params": {
                    "prompt": (
                        "Context: {{steps.search.output.results[0].text}}\n"
                        "Question: {{input.question}}"
                    ),
                    "systemPrompt": "Answer from the context only.",
                    "maxTokens": 200,
                },
            },
        ],
    })
