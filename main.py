"""hopsearch - multi-hop web search agent

Simple CLI for running a query through the agent pipeline, or serving the API.
"""

import argparse
import asyncio

from hopsearch.agents.orchestrator import AgentOrchestrator
from hopsearch.models.events import SSEEvent
from hopsearch.models.schemas import AnswerSettings
from hopsearch.services import event_bus


def print_event(event: SSEEvent) -> None:
    """Render one pipeline event on the terminal."""
    event_type = event.event.value
    data = event.data

    if event_type == "thinking":
        print(f"\n[~] {data.get('text', '')}")

    elif event_type == "progress":
        print(f"  [*] {data.get('label', '')}")

    elif event_type == "tool_call":
        params = data.get("params", {})
        print(f"  [>] {data.get('name')}: {params.get('query', '')[:80]}")

    elif event_type == "step_complete":
        print(f"  [+] Step {data.get('step')}: {data.get('summary', '')}")

    elif event_type == "mock_search_detected" and data.get("isMock"):
        print("  [!] Results include simulated search data")

    elif event_type == "sources_update":
        results = data.get("results", [])
        print(f"\n[*] Sources ({len(results)}):")
        for i, result in enumerate(results, 1):
            print(f"  [{i}] {result.get('title', '')[:80]}")
            print(f"      {result.get('url', '')}")
        print(f"\n{'='*50}")

    elif event_type == "answer_token":
        print(data.get("chunk", ""), end="", flush=True)

    elif event_type == "answer_complete":
        print(f"\n{'='*50}")
        print(f"   Runtime: {data.get('runtime_ms')}ms")
        print(f"   Tokens: {data.get('tokens_used')}")

    elif event_type == "quality_checked":
        print(f"   Quality: {data.get('score')}/100 (coverage {data.get('citationCoverage')}%)")
        for issue in data.get("issues", []):
            print(f"     - {issue}")

    elif event_type == "follow_ups":
        print("\n[?] Follow-up questions:")
        for question in data.get("questions", []):
            print(f"  - {question}")

    elif event_type == "error":
        print(f"\n[!] Error: {data.get('message', 'Unknown error')}")


async def run_query(query: str, model: str | None = None, answer_settings: AnswerSettings | None = None):
    """Run one query and print the event stream as it arrives."""
    print(f"Query: {query}")
    print("-" * 50)

    orchestrator = AgentOrchestrator(model=model)
    await event_bus.publish(orchestrator.run(query, answer_settings=answer_settings), [print_event])


def main():
    parser = argparse.ArgumentParser(description="hopsearch multi-hop web search agent")
    parser.add_argument("--query", "-q", help="Search query")
    parser.add_argument("--model", "-m", help="Model to use (default: from config)")
    parser.add_argument("--tone", choices=["casual", "professional", "technical"], default="professional")
    parser.add_argument("--depth", choices=["brief", "detailed", "comprehensive"], default="detailed")
    parser.add_argument("--citations", choices=["relaxed", "standard", "strict"], default="standard")
    parser.add_argument("--serve", action="store_true", help="Run the HTTP API instead of a single query")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()

    if args.serve:
        import uvicorn

        uvicorn.run("hopsearch.main:app", host=args.host, port=args.port)
        return

    if not args.query:
        parser.error("--query is required unless --serve is given")

    answer_settings = AnswerSettings(tone=args.tone, depth=args.depth, citation_strictness=args.citations)
    asyncio.run(run_query(args.query, args.model, answer_settings))


if __name__ == "__main__":
    main()
