"""Command line interface.

Usage:
    site-audit run [URL] [--refresh] [--json] [--strategy mobile|desktop|both]
                         [--inventory FILE] [--seo]
    site-audit last [--json]
    site-audit seo URL [--json]
"""

import argparse
import asyncio
import json
import sys

import structlog

from siteaudit.cache import AuditCache
from siteaudit.checks.models import CHECK_LABELS, CacheLayersReport
from siteaudit.checks.seo_basics import SeoBasicsResult
from siteaudit.config import get_settings
from siteaudit.exceptions import SiteAuditError
from siteaudit.inventory.base import StaticInventory
from siteaudit.logging import setup_logging
from siteaudit.models import VITALS_INTERNAL, AuditPayload
from siteaudit.scoring.normalize import MISSING_VALUE, grade
from siteaudit.scoring.sections import SECTION_CHECKS, SECTION_LABELS, SEO_SECTION
from siteaudit.tasks.audit import recommendations_for, run_audit, run_seo_basics

logger = structlog.get_logger(__name__)

RULE = "=" * 70


def _score(value: int | None) -> str:
    return MISSING_VALUE if value is None else f"{value} ({grade(value)})"


def print_payload(payload: AuditPayload) -> None:
    """Print a human-readable audit report."""
    print(RULE)
    print(f"SITE AUDIT: {payload.url}")
    print(RULE)
    print(f"Overall: {payload.overall} ({payload.grade})")
    print(f"Run at:  {payload.timestamp}")
    if payload.final_url and payload.final_url != payload.url:
        print(f"Final URL: {payload.final_url}")
    if payload.psi_error:
        print(f"PageSpeed error: {payload.psi_error}")
    for warning in payload.warnings:
        print(f"Warning: {warning}")
    print()

    cats = payload.psi_scores
    suffix = " (estimated)" if cats.estimated else ""
    print(f"Categories{suffix}:")
    print(f"  Performance:    {_score(cats.performance)}")
    print(f"  Best Practices: {_score(cats.best_practices)}")
    print(f"  SEO:            {_score(cats.seo)}")
    print()

    vitals_note = ""
    if payload.vitals_source == VITALS_INTERNAL:
        vitals_note = " (estimated, excluded from overall)"
    print(f"Web Vitals: {_score(payload.web_vitals)} [source: {payload.vitals_source}]{vitals_note}")
    if payload.lab_metrics:
        for slug, metric in payload.lab_metrics.items():
            print(f"  {slug:<4} {metric.label:<26} {metric.value_fmt:>8}  {_score(metric.score)}")
        print(f"  Lab overall: {_score(payload.lab_overall)}")
    print()

    internal = payload.internal
    recommendations = recommendations_for(internal)
    print(f"Internal checks (overall {internal.overall}):")
    for key, slugs in SECTION_CHECKS.items():
        section = internal.sections.get(key)
        if section is None:
            continue
        print(f"  {SECTION_LABELS[key]}: {_score(section.score)}")
        for slug in slugs:
            result = internal.checks.get(slug)
            if result is None:
                continue
            line = f"    - {CHECK_LABELS[slug]}: {result.score}  {result.meta.hint()}"
            if result.meta.error:
                line += f"  [error: {result.meta.error}]"
            print(line)
        top = recommendations.get(key)
        if top is not None:
            print(f"    Recommended next step: {top.title}. {top.message} ({top.docs_url})")

    seo = internal.sections.get(SEO_SECTION)
    if seo is not None:
        print(f"  {SECTION_LABELS[SEO_SECTION]}: {_score(seo.score)}")
    if internal.cache_layers is not None:
        print()
        print_cache_layers(internal.cache_layers)
    print(RULE)


def _names(values) -> str:
    return ", ".join(values) or "none"


def print_cache_layers(report: CacheLayersReport) -> None:
    print("Cache layers:")
    print(f"  Page cache plugins:   {_names(report.page_cache_plugins.values())}")
    print(f"  Object cache plugins: {_names(report.object_cache_plugins.values())}")
    print(f"  Drop-ins:             {_names(report.dropins)}")
    print(f"  CDN:                  {_names(report.cdn)}")
    print(f"  Server cache:         {_names(report.server_cache)}")
    if report.error:
        print(f"  [error: {report.error}]")
    for risk in report.risks:
        print(f"  ! {risk}")
    for recommendation in report.recommendations:
        print(f"  * {recommendation}")


def print_seo(url: str, result: SeoBasicsResult) -> None:
    print(RULE)
    print(f"SEO BASICS: {url}")
    print(RULE)
    print(f"Score: {result.score} ({result.grade})")
    print(f"  Title:            {result.title.score}  ({result.title.length} chars)")
    print(f"  Meta description: {result.meta_description.score}  ({result.meta_description.length} chars)")
    print(f"  H1:               {result.h1.score}  ({result.h1.count} found)")
    for message in result.messages:
        print(f"  * {message}")
    print(RULE)


def cmd_run(args: argparse.Namespace) -> int:
    settings = get_settings()
    inventory = StaticInventory.from_file(args.inventory) if args.inventory else None

    payload = asyncio.run(
        run_audit(
            args.url,
            force_refresh=args.refresh,
            settings=settings,
            inventory=inventory,
            strategy=args.strategy,
            include_seo=True if args.seo else None,
        )
    )

    if args.json:
        print(json.dumps(payload.to_dict(), indent=2, ensure_ascii=False))
    else:
        print_payload(payload)
    return 0


def cmd_last(args: argparse.Namespace) -> int:
    payload = asyncio.run(AuditCache().load_last())
    if payload is None:
        print("No audit has been run yet.", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(payload.to_dict(), indent=2, ensure_ascii=False))
    else:
        print_payload(payload)
    return 0


def cmd_seo(args: argparse.Namespace) -> int:
    result = asyncio.run(run_seo_basics(args.url))
    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        print_seo(args.url, result)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="site-audit",
        description="Audit a site's performance, caching and configuration health",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run an audit")
    run.add_argument("url", nargs="?", help="URL to audit (default: configured test URL)")
    run.add_argument("--refresh", action="store_true", help="Ignore the cached result")
    run.add_argument("--json", action="store_true", help="Print the payload as JSON")
    run.add_argument(
        "--strategy",
        choices=["mobile", "desktop", "both"],
        help="PageSpeed strategy (default: PSI_STRATEGY setting)",
    )
    run.add_argument("--inventory", metavar="FILE", help="JSON file with site inventory facts")
    run.add_argument("--seo", action="store_true", help="Include the SEO basics scan")
    run.set_defaults(func=cmd_run)

    last = subparsers.add_parser("last", help="Show the last audit")
    last.add_argument("--json", action="store_true", help="Print the payload as JSON")
    last.set_defaults(func=cmd_last)

    seo = subparsers.add_parser("seo", help="Run only the SEO basics scan")
    seo.add_argument("url", help="URL to scan")
    seo.add_argument("--json", action="store_true", help="Print the result as JSON")
    seo.set_defaults(func=cmd_seo)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    try:
        return args.func(args)
    except SiteAuditError as e:
        logger.error("command_failed", command=args.command, code=e.code, error=e.message)
        print(f"Error: {e.message}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
