"""stepflow Quickstart — Build and run a retrieval → branch → completion workflow in-memory.

Nothing external is needed:
- Retrieval uses InMemoryRetrievalService (lexical scoring)
- Completion uses StaticCompletionService (pattern table, no API key)
- Execution events are printed from a RecordingSink

Run:
    python examples/quickstart/main.py
"""

import asyncio
import json

from stepflow import ExecutionStatus, WorkflowBuilder, WorkflowExecutor, default_registry
from stepflow.callbacks import RecordingSink
from stepflow.services import InMemoryRetrievalService, StaticCompletionService

TENANT = "quickstart-demo"


def _build_services():
    retrieval = InMemoryRetrievalService()
    retrieval.add_document(
        "policies",
        "Digital products can be refunded within 14 days if they have not been downloaded.",
        {"category": "refund"},
    )
    retrieval.add_document(
        "policies",
        "Physical products may be returned within 30 days in their original packaging.",
        {"category": "refund"},
    )
    completion = StaticCompletionService(
        {
            r"refund": "You can get a refund within 14 days as long as you have not downloaded it.",
            r"no policy": "Sorry, I could not find a policy that answers that. A human will follow up.",
        }
    )
    return retrieval, completion


def _build_workflow():
    return (
        WorkflowBuilder("Quickstart support answer", workflow_id="quickstart")
        .retrieval("search", collection_id="policies", query="{{input.question}}", top_k=2)
        .condition(
            "found",
            expression="steps.search.output.count > 0",
            on_true="answer",
            on_false="fallback",
        )
        .completion(
            "answer",
            prompt="Context: {{steps.search.output.results[0].text}}\nQuestion: {{input.question}}",
            system_prompt="Answer from the context only.",
            max_attempts=3,
            base_delay_ms=200,
        )
        .end()
        .completion("fallback", prompt="There is no policy for: {{input.question}}")
        .build()
    )


def _print_execution(execution, sink: RecordingSink) -> None:
    print(f"  Execution: {execution.id}")
    print(f"  Status   : {execution.status.value.upper()}  ({execution.duration_ms}ms)")
    print()
    print("  Steps:")
    for se in execution.step_executions:
        print(f"    {se.step_id:10s} {se.step_type:12s} {se.status.value:10s} retries={se.retry_count}")
    print()
    print("  Events:")
    for level, message, fields in sink.events:
        print(f"    [{level:5s}] {fields.get('event', ''):20s} {message}")
    print()
    if execution.status == ExecutionStatus.COMPLETED:
        print("  Output:")
        print("    " + json.dumps(execution.output, indent=2).replace("\n", "\n    "))
    else:
        print(f"  Error: {execution.error.code} {execution.error.message}")
    print()


async def main() -> None:
    retrieval, completion = _build_services()
    registry = default_registry(retrieval=retrieval, completion=completion, default_model="static")
    sink = RecordingSink()
    executor = WorkflowExecutor(registry, sink=sink)
    workflow = _build_workflow()

    for question in ("Can I get a refund on an ebook?", "Do you sell gift cards?"):
        print("=" * 72)
        print(f"  Question: {question!r}")
        print("=" * 72)
        sink.clear()
        execution = await executor.execute(workflow, TENANT, {"question": question})
        _print_execution(execution, sink)


if __name__ == "__main__":
    asyncio.run(main())
