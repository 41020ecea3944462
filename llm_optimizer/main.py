#!/usr/bin/env python3
"""
Run the simulate-then-analyze workflow for one keyword.

Usage:
    python -m llm_optimizer "CRM software"

    # German prompts and messages, save the run as JSON
    python -m llm_optimizer "Veganes Proteinpulver" --language de --output-dir outputs

    # Custom config file
    python -m llm_optimizer "CRM software" --config my_config.yaml -v
"""
import argparse
import logging
import sys

from llm_optimizer.config import DEFAULT_CONFIG_PATH, dump_config, load_config
from llm_optimizer.prompts import SUPPORTED_LANGUAGES
from llm_optimizer.utils.storage import DataSaver
from llm_optimizer.workflow import WorkflowController, WorkflowSnapshot, WorkflowStatus

STATUS_LINES = {
    WorkflowStatus.SIMULATING: "> Intercepting network traffic...",
    WorkflowStatus.ANALYZING: "> Processing extracted data...",
    WorkflowStatus.COMPLETE: "> Analysis complete",
    WorkflowStatus.ERROR: "> Process failed",
}


def print_status(snapshot: WorkflowSnapshot) -> None:
    line = STATUS_LINES.get(snapshot.status)
    if line:
        print(line)


def render_snapshot(snapshot: WorkflowSnapshot) -> str:
    data = snapshot.to_dict()
    if snapshot.status == WorkflowStatus.ERROR:
        return f"Error: {data['error']}"

    lines = []
    simulation = data.get("simulation") or {}
    lines.append(f"Target: {data['keyword']}")
    lines.append(f"Detected intent: {simulation.get('detectedIntent')}")
    for provider in simulation.get("providers", []):
        lines.append(f"  [{provider['name']}] {provider['status']} in {provider['latency']}ms")
        for query in provider.get("interceptedQueries", []):
            lines.append(f"    - {query}")
    for key, value in (simulation.get("metadata") or {}).items():
        lines.append(f"  {key}: {value}")

    report = data.get("report") or {}
    if report:
        lines.append("")
        lines.append("Executive summary:")
        lines.append(f"  {report.get('executiveSummary', '')}")
        lines.append("Ranking factors:")
        for factor in _entries(report, "rankingFactors"):
            lines.append(f"  {str(factor.get('score', '?')):>5}  {factor.get('name')}: {factor.get('description')}")
        lines.append("Keyword clusters:")
        for cluster in _entries(report, "keywordClusters"):
            keywords = cluster.get("keywords") or []
            if not isinstance(keywords, (list, tuple)):
                keywords = [keywords]
            lines.append(f"  {cluster.get('topic')}: {', '.join(str(k) for k in keywords)}")
        lines.append("Action plan:")
        for item in _entries(report, "actionPlan"):
            lines.append(f"  [{item.get('priority')}/{item.get('effort')}] {item.get('title')}: {item.get('description')}")
    return "\n".join(lines)


def _entries(report: dict, key: str) -> list:
    # A pass-through report may carry null lists or non-object items
    value = report.get(key) or []
    if not isinstance(value, (list, tuple)):
        return []
    return [entry for entry in value if isinstance(entry, dict)]


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Reverse-engineer AI search intent for a keyword")
    parser.add_argument("keyword", help="Keyword or topic to analyze")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to config.yaml")
    parser.add_argument("--language", choices=SUPPORTED_LANGUAGES, default=None,
                        help="Prompt and message language (overrides config)")
    parser.add_argument("--output-dir", default=None, help="Save the finished run as JSON here")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - [%(levelname)s] - %(message)s'
    )
    if args.verbose:
        logging.debug(f"Config:\n{dump_config(load_config(args.config))}")

    controller = WorkflowController.from_config(args.config, language=args.language)
    controller.subscribe(print_status)

    snapshot = controller.run(args.keyword)
    if snapshot.status == WorkflowStatus.IDLE:
        print("Keyword must not be empty.", file=sys.stderr)
        return 2

    print(render_snapshot(snapshot))

    if args.output_dir:
        path = DataSaver(args.output_dir).save_run(snapshot, controller.telemetry, verbose=True)
        print(f"\nRun saved to: {path}")

    return 0 if snapshot.status == WorkflowStatus.COMPLETE else 1


if __name__ == "__main__":
    sys.exit(main())
