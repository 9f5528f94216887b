import argparse
import json
import logging
import sys
from typing import List, Optional

from cournot_por.config import LOG_LEVEL
from cournot_por.schemas.steps import PipelineOptions
from cournot_por.services.gateway_client import redact_code
from cournot_por.services.pipeline_service import run_pipeline, get_capabilities
from cournot_por.services.report_service import format_report

logger = logging.getLogger("cournot_por")

class CliParser(argparse.ArgumentParser):
    # Usage errors exit 1 like every other failure
    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"Error: {message}\n")

def build_parser() -> CliParser:
    common = CliParser(add_help=False)
    common.add_argument("--code", required=True, help="Cournot access code")
    common.add_argument("--verbose", action="store_true", help="Log gateway calls and retries to stderr")

    parser = CliParser(
        prog="cournot-por",
        description="Cournot Proof-of-Reasoning CLI",
    )
    sub = parser.add_subparsers(dest="command", metavar="{resolve,capabilities}")

    resolve = sub.add_parser("resolve", parents=[common], help="Resolve a question or market")
    resolve.add_argument("--query", required=True, help="The question or market to resolve")
    resolve.add_argument("--strict", action="store_true", help="Enable strict mode")
    resolve.add_argument("--collectors", help="Comma-separated list of collectors")
    resolve.add_argument("--include-raw", action="store_true", help="Include raw content from collectors")
    resolve.add_argument("--json", action="store_true", help="Output JSON instead of the formatted report")

    sub.add_parser("capabilities", parents=[common], help="List available collectors and providers")
    return parser

def parse_collectors(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    collectors = [c.strip() for c in value.split(",") if c.strip()]
    return collectors or None

def _resolve(args) -> None:
    report = run_pipeline(PipelineOptions(
        query=args.query,
        code=args.code,
        strict_mode=args.strict,
        collectors=parse_collectors(args.collectors),
        include_raw_content=args.include_raw,
    ))
    if args.json:
        print(json.dumps(report.model_dump(exclude={"raw"}, exclude_none=True), indent=2))
    else:
        print(format_report(report))

def _capabilities(args) -> None:
    result = get_capabilities(args.code)
    print(json.dumps(result.model_dump(exclude_none=True), indent=2))

COMMANDS = {
    "resolve": _resolve,
    "capabilities": _capabilities,
}

def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    logging.basicConfig(stream=sys.stderr, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        logger.setLevel(logging.DEBUG if args.verbose else LOG_LEVEL)
        COMMANDS[args.command](args)
    except Exception as e:
        # Unclassified transport errors land here too; never echo the code
        print(f"Error: {redact_code(str(e), args.code)}", file=sys.stderr)
        logger.debug("%s failed with %s", args.command, type(e).__name__)
        return 1
    return 0

if __name__ == "__main__":
    sys.exit(main())
