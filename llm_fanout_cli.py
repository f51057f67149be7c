# llm_fanout_cli.py
import argparse
import asyncio
import json

from llm_fanout import settings
from llm_fanout.logging_setup import configure_logging
from llm_fanout.runner import create_orchestrator
from llm_fanout.types import to_jsonable


def _print_status(status):
    print(f"\n=== Configured models: {status.count} ===")
    for m in status.models:
        print(f"  - {m.provider:10} {m.name}")


def _print_result(result):
    for r in result.responses:
        print("\n" + "=" * 80)
        tokens = f" | tokens={r.tokens_used}" if r.tokens_used is not None else ""
        print(f"{r.provider} | {r.model_name} | {r.latency_ms} ms{tokens}")
        if r.error:
            print("ERROR:", r.error)
        else:
            print(r.text)

    print("\n" + "=" * 80)
    print(f"OK: {result.success_count}  ERR: {result.error_count}  total: {result.total_latency_ms} ms")


async def _ask(orch, args) -> int:
    result = await orch.ask(args.prompt, args.system, timeout=args.timeout)
    if args.json:
        print(json.dumps(to_jsonable(result), indent=2))
    else:
        _print_result(result)
    return 0 if result.success_count else 1


async def _test(orch, args) -> int:
    checks = await orch.test_connections()
    if args.json:
        print(json.dumps(to_jsonable(checks), indent=2))
    else:
        for c in checks:
            print(f"[test] {c.provider:10} {c.model_name:30} {'OK' if c.ok else 'FAIL'}")
    return 0 if all(c.ok for c in checks) else 1


def main():
    ap = argparse.ArgumentParser(description="Ask several LLM providers the same question in parallel")
    ap.add_argument("--log-level", default=settings.LOG_LEVEL, help="Logging level (default: WARNING)")
    ap.add_argument("--json-logs", action="store_true", default=settings.LOG_JSON, help="Emit JSON log lines")
    sub = ap.add_subparsers(dest="command", required=True)

    p_ask = sub.add_parser("ask", help="Query every configured provider")
    p_ask.add_argument("prompt", help="Question text")
    p_ask.add_argument("--system", default=None, help="System prompt sent to every model")
    p_ask.add_argument("--timeout", type=float, default=None, help="Per-provider deadline in seconds")
    p_ask.add_argument("--json", action="store_true", help="Print the result as JSON")

    sub.add_parser("status", help="List configured providers")

    p_test = sub.add_parser("test", help="Probe every configured provider")
    p_test.add_argument("--json", action="store_true", help="Print the checks as JSON")

    args = ap.parse_args()
    configure_logging(args.log_level, json_logs=args.json_logs)

    orch = create_orchestrator()
    if args.command == "status":
        _print_status(orch.get_status())
        raise SystemExit(0)

    if orch.get_status().count == 0:
        print("No providers configured. Set OPENAI_API_KEY, XAI_API_KEY, ANTHROPIC_API_KEY or GOOGLE_API_KEY.")
        raise SystemExit(2)

    runner = _ask if args.command == "ask" else _test
    raise SystemExit(asyncio.run(runner(orch, args)))


if __name__ == "__main__":
    main()
