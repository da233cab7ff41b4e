"""Market Research - recruitment market research tool

Simple CLI for running research queries.
"""

import argparse
import asyncio
import sys

from market_research.agents.orchestrator import ResearchPipeline, follow_up_question
from market_research.errors import ResearchError
from market_research.models.research import ResearchMode, ResearchRequest, ResearchResult
from market_research.services.export import to_markdown_document, to_plain_text


def render_result(result: ResearchResult, question: str, mode: ResearchMode, output_format: str) -> str:
    if output_format == "markdown":
        return to_markdown_document(result, question, mode)
    if output_format == "plain":
        return to_plain_text(result)
    return result.full_report


async def run_research(
    question: str,
    mode: ResearchMode,
    output_format: str = "report",
    user_id: str | None = None,
) -> int:
    """Run research on the given question."""
    print(f"Research query: {question}")
    print(f"Mode: {mode.value}")
    print("-" * 50)

    pipeline = ResearchPipeline()
    request = ResearchRequest(question=question, mode=mode)

    try:
        async for event in pipeline.research(request, user_id=user_id):
            event_type = event.event.value
            data = event.data

            if event_type == "queries_planned":
                queries = data.get("queries", [])
                print(f"\n[*] {data.get('round')} queries ({len(queries)}):")
                for i, query in enumerate(queries, 1):
                    print(f"  {i}. {query[:80]}")

            elif event_type == "stage_started":
                print(f"\n[~] Starting {data.get('stage')} stage...")

            elif event_type == "search_result":
                print(f"  [+] {data.get('count')} results: {data.get('query', '')[:70]}")

            elif event_type == "research_complete":
                result = ResearchResult.model_validate(data["result"])
                print(f"\n\n[*] Research Complete!")
                print(f"   Runtime: {data.get('runtime_ms')}ms")
                print(f"   Queries: {data.get('queries_executed')}")
                print(f"   Sources: {result.data_points}")
                print(f"\n{'='*50}")
                print("REPORT:")
                print(f"{'='*50}")
                print(result.summary)
                print()
                print(render_result(result, question, mode, output_format))

            elif event_type == "error":
                print(f"\n[!] Error: {data.get('message', 'Unknown error')}")
    except ResearchError:
        return 1
    return 0


def main():
    parser = argparse.ArgumentParser(description="Recruitment market research tool")
    parser.add_argument("--query", "-q", required=True, help="Research question")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in ResearchMode],
        default=ResearchMode.QUICK.value,
        help="quick (8-12 searches) or full (20-30 searches)",
    )
    parser.add_argument("--follow-up", help="Follow-up question appended to the query")
    parser.add_argument(
        "--format",
        dest="output_format",
        choices=["report", "plain", "markdown"],
        default="report",
        help="How to print the final report",
    )
    parser.add_argument("--user-id", help="User id recorded in research history")

    args = parser.parse_args()

    question = args.query
    if args.follow_up:
        question = follow_up_question(question, args.follow_up)

    sys.exit(
        asyncio.run(
            run_research(question, ResearchMode(args.mode), args.output_format, args.user_id)
        )
    )


if __name__ == "__main__":
    main()
