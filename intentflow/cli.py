"""
CLI entry point.

Usage:
    # Classify a command and print the intent
    python -m intentflow.cli classify "Swap 100 USDC for ETH on Ethereum"

    # Classify, run the analysis pipeline and print the aggregate
    python -m intentflow.cli run "Bridge 500 USDC from Ethereum to Polygon"

    # Same, then confirm and execute
    python -m intentflow.cli run "Swap 100 USDC for ETH" --execute

    # Serve the HTTP API
    python -m intentflow.cli serve --port 8000
"""

import argparse
import asyncio
import json
import logging
import sys

from intentflow.core.config import settings
from intentflow.domain.command.entities import ExecutionState, PipelineRun
from intentflow.shared.logging import configure_logging

logger = logging.getLogger(__name__)


def _print_progress(run: PipelineRun) -> None:
    cells = " ".join(f"{s.progress:>3}" for s in run.stages)
    print(f"\r[{run.completed_count:>2}/{len(run.stages)}] {cells}", end="", flush=True)


def cmd_classify(args: argparse.Namespace) -> None:
    """Classify a command and print the intent as JSON."""
    from intentflow.interfaces.command.dependencies import build_interpreter

    intent = build_interpreter().classify(args.text)
    print(
        json.dumps(
            {
                "category": intent.category.value,
                "confidence": intent.confidence,
                "parameters": dict(intent.parameters),
                "action_summary": intent.action_summary,
                "planned_steps": list(intent.planned_steps),
            },
            indent=2,
        )
    )


async def _run(args: argparse.Namespace) -> int:
    from intentflow.interfaces.command.dependencies import build_controller

    controller = build_controller()
    controller.subscribe(
        lambda previous, current: logger.debug("%s -> %s", previous.value, current.value)
    )

    pending = controller.begin_submit(args.text)
    watcher = asyncio.create_task(_watch(controller))
    try:
        run = await pending
    finally:
        watcher.cancel()
    print()

    if run is None or controller.state is not ExecutionState.READY:
        logger.error("Analysis failed: %s", controller.error)
        return 1

    aggregate = run.aggregate
    print(f"Intent:       {run.intent.action_summary}")
    print(f"Success:      {aggregate.success_probability:.0%}")
    print(f"Risk level:   {aggregate.risk_level.value}")
    print(f"Est. gas:     {aggregate.estimated_gas}")
    print(f"Est. time:    {aggregate.estimated_time}")
    print(f"Security:     {aggregate.security_score}/100")
    for item in aggregate.recommendations:
        print(f"  - {item}")

    if not args.execute:
        return 0

    result = await controller.confirm()
    if result.succeeded:
        print(f"Executed: {result.tx_reference}")
        return 0
    logger.error("Execution failed: %s", result.error)
    return 1


async def _watch(controller) -> None:
    while True:
        if controller.run is not None:
            _print_progress(controller.run)
        await asyncio.sleep(0.1)


def cmd_run(args: argparse.Namespace) -> None:
    """Classify, analyse and optionally execute a command."""
    sys.exit(asyncio.run(_run(args)))


def cmd_serve(args: argparse.Namespace) -> None:
    """Serve the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("intentflow.main:app", host=args.host, port=args.port, reload=args.reload)


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="intentflow",
        description="Natural-language command interpretation and analysis pipeline",
    )
    parser.add_argument("--log-level", default=settings.log_level)
    sub = parser.add_subparsers(dest="command", required=True)

    p_classify = sub.add_parser("classify", help="Classify a command")
    p_classify.add_argument("text")
    p_classify.set_defaults(func=cmd_classify)

    p_run = sub.add_parser("run", help="Analyse a command through every stage")
    p_run.add_argument("text")
    p_run.add_argument("--execute", action="store_true", help="Confirm and execute when ready")
    p_run.set_defaults(func=cmd_run)

    p_serve = sub.add_parser("serve", help="Serve the HTTP API")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8000)
    p_serve.add_argument("--reload", action="store_true")
    p_serve.set_defaults(func=cmd_serve)

    args = parser.parse_args()
    configure_logging(args.log_level)
    args.func(args)


if __name__ == "__main__":
    main()
