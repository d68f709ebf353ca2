"""Command line interface for the login probe."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional, Sequence

from .core.artifacts import AnalysisResult, BatchJob, LoginAttemptResult
from .core.config import load_configuration
from .core.errors import InputError, LoginProbeError
from .core.models import Credentials, SubmitOptions
from .service import ANALYSIS_MODES, LoginProbe


def parse_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="login-probe", description="Login surface detector")
    parser.add_argument("--store", help="JSON file used to persist results")
    parser.add_argument("--headed", action="store_true", help="Run the browser with a visible window")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    analyze = commands.add_parser("analyze", help="Detect login fields and security features")
    analyze.add_argument("url", help="Login page URL")
    analyze.add_argument("--mode", choices=ANALYSIS_MODES, default="static", help="Analysis mode")
    analyze.add_argument("--json", action="store_true", help="Print the raw JSON result")

    submit = commands.add_parser("submit", help="Submit credentials to a login page")
    submit.add_argument("url", help="Login page URL")
    _add_credential_arguments(submit)
    submit.add_argument("--analyze", action="store_true", help="Run an analysis before submitting")
    submit.add_argument("--json", action="store_true", help="Print the raw JSON result")

    batch = commands.add_parser("batch", help="Submit credentials to several login pages")
    batch.add_argument("name", help="Job name")
    batch.add_argument("urls", nargs="+", help="Target URLs")
    _add_credential_arguments(batch)

    status = commands.add_parser("status", help="Show a batch job")
    status.add_argument("job_id", help="Job identifier")

    forms = commands.add_parser("forms", help="Generate or list standalone login forms")
    form_commands = forms.add_subparsers(dest="form_command", required=True)
    form_save = form_commands.add_parser("save", help="Analyze a page and store a replica form")
    form_save.add_argument("url", help="Login page URL")
    form_save.add_argument("--mode", choices=ANALYSIS_MODES, default="static", help="Analysis mode")
    form_commands.add_parser("list", help="List stored forms")

    return parser.parse_args(argv)


def _add_credential_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-U", "--username", required=True, help="Login username or email")
    parser.add_argument("-P", "--password", required=True, help="Login password")
    parser.add_argument("--user-agent", help="Override the browser user agent")
    parser.add_argument("--proxy", help="Proxy server, e.g. http://127.0.0.1:8080")
    parser.add_argument("--timeout", type=int, help="Page load timeout in milliseconds")
    parser.add_argument("--browser", action="store_true", help="Use browser mode for the analysis step")


def _options_from(args: argparse.Namespace) -> SubmitOptions:
    return SubmitOptions(
        user_agent=args.user_agent,
        timeout_ms=args.timeout,
        proxy=args.proxy,
        headless=False if args.headed else None,
        use_browser=args.browser,
    )


# ----------------------------------------------------------------------
# Printers
# ----------------------------------------------------------------------
def print_analysis(result: AnalysisResult) -> None:
    print(f"\n=== Analysis :: {result.url} ===")
    print(f"[*] Title: {result.metadata.get('title')}")
    print(f"[*] Forms found: {result.metadata.get('forms_found')}")
    if result.fields:
        for item in result.fields:
            required = " (required)" if item["required"] else ""
            print(f" - {item['type']:<8} {item['selector']}  [{item['label']}]{required}")
    else:
        print("[!] No login fields detected.")
    if result.security_features:
        for feature in result.security_features:
            print(f"[+] Security feature: {feature['type']}")
    else:
        print(" - No security features detected.")


def print_attempt(result: LoginAttemptResult) -> None:
    print(f"\n=== Login attempt :: {result.url} ===")
    print(f"[{'+' if result.success else '!'}] {'SUCCESS' if result.success else 'FAILED'} in {result.duration_ms}ms")
    if result.redirect_url:
        print(f"[*] Redirected to {result.redirect_url}")
    print(f"[*] Cookies captured: {len(result.cookies)}")
    for error in result.errors:
        print(f"   Error: {error}")


def print_job(job: BatchJob) -> None:
    print(f"\n=== Batch job {job.id} ({job.job_name}) ===")
    print(f"[*] Status: {job.status} ({job.progress}%)")
    for entry in job.results:
        status = "SUCCESS" if entry.get("success") else "FAILED"
        print(f" - {status} :: {entry.get('url')}")
        for error in entry.get("errors") or ():
            print(f"   Error: {error}")
    if job.error:
        print(f"[!] {job.error}")
    elif not job.finished:
        print(f"[*] Job still running; check again with: login-probe status {job.id}")


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------
def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_arguments(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = load_configuration(args.store, headless=False if args.headed else None)
    probe = LoginProbe(config)

    try:
        if args.command == "analyze":
            result = probe.analyze(args.url, args.mode)
            if args.json:
                print(result.to_json())
            else:
                print_analysis(result)

        elif args.command == "submit":
            credentials = Credentials(args.username, args.password)
            options = _options_from(args)
            if args.analyze:
                report = probe.login_attempt(args.url, credentials, options)
                print(json.dumps(report, indent=2, ensure_ascii=False, default=str))
                return 0 if report["success"] else 1
            attempt = probe.submit(args.url, credentials, options)
            if args.json:
                print(json.dumps(attempt.to_dict(), indent=2, ensure_ascii=False, default=str))
            else:
                print_attempt(attempt)
            return 0 if attempt.success else 1

        elif args.command == "batch":
            credentials = Credentials(args.username, args.password)
            job_id = probe.start_batch(
                args.name, args.urls, credentials, _options_from(args), background=False
            )
            print_job(probe.get_batch(job_id))

        elif args.command == "status":
            print_job(probe.get_batch(args.job_id))

        elif args.command == "forms":
            if args.form_command == "save":
                analysis = probe.analyze(args.url, args.mode)
                if not analysis.fields:
                    print("[!] No login fields detected; nothing to save.")
                    return 1
                form = probe.save_form(args.url, analysis.fields)
                print(f"[+] Form {form.id} saved for {form.target_url}")
                print(form.html_code)
            else:
                forms = probe.list_forms()
                if not forms:
                    print(" - No stored forms.")
                for form in forms:
                    print(f" - {form.id} :: {form.target_url} ({form.created_at})")

    except InputError as exc:
        print(f"[!] {exc}", file=sys.stderr)
        return 2
    except LoginProbeError as exc:
        print(f"[!] {exc}", file=sys.stderr)
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    return run_cli(argv)


if __name__ == "__main__":
    sys.exit(main())
