from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import datetime, timezone

from contractlens.core.logging import configure_logging
from contractlens.persistence.guards import TenantRef
from contractlens.services.reports import generate_report, report_payload


def _parse_instant(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _build_parser() -> argparse.ArgumentParser:
    # Same input contract as the dashboard: tenant, period and optional custom bounds.
    parser = argparse.ArgumentParser(description="Assemble a tenant report aggregate and print it as JSON")
    parser.add_argument("--tenant", required=True, help="Tenant id")
    parser.add_argument("--kind", default="user", choices=["user", "organization"], help="Tenant kind")
    parser.add_argument("--period", default="month", help="week|month|quarter|year|custom")
    parser.add_argument("--start", type=_parse_instant, default=None, help="Custom window start (ISO 8601)")
    parser.add_argument("--end", type=_parse_instant, default=None, help="Custom window end (ISO 8601)")
    parser.add_argument("--trends", action="store_true", help="Include period-over-period trends")
    parser.add_argument("--deadline-ms", type=int, default=None, help="Overall deadline in milliseconds")
    return parser


async def _run(args: argparse.Namespace) -> int:
    tenant = TenantRef(kind=args.kind, tenant_id=args.tenant)
    aggregate = await generate_report(
        tenant,
        args.period,
        custom_start=args.start,
        custom_end=args.end,
        include_trends=args.trends or None,
        deadline_s=args.deadline_ms / 1000.0 if args.deadline_ms else None,
    )
    print(json.dumps(report_payload(aggregate), indent=2, sort_keys=True))
    if aggregate.degraded:
        print(f"report degraded: {', '.join(aggregate.warnings)}", file=sys.stderr)
    return 0


def main() -> int:
    configure_logging()
    args = _build_parser().parse_args()
    try:
        return asyncio.run(_run(args))
    except Exception as exc:  # noqa: BLE001 - surface failure for scheduler diagnostics.
        print(f"report_snapshot failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
