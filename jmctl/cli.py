"""jmctl - Jenkins to Mattermost relay CLI.

Subcommands mirror the places a notification can originate: a lifecycle
event (``notify``), an explicit pipeline message (``send``), a dry run
(``preview``), the HTTP listener (``serve``) and a connectivity check
(``test-connection``).
"""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Iterable, Optional, Tuple

import yaml

from jenkins_mattermost.core.config import RelayConfig, load_config
from jenkins_mattermost.core.decision import build_color, should_publish, start_color, status_message
from jenkins_mattermost.core.events import COMPLETED, STARTED, LifecycleDispatcher
from jenkins_mattermost.core.ingest.jenkins_api import JenkinsClient, JenkinsError, parse_project
from jenkins_mattermost.core.model import Build, Project
from jenkins_mattermost.core.notify import AbortError, ActiveNotifier, MattermostSendStep, MattermostService
from jenkins_mattermost.core.settings import NotifierSettings

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_LOOKUP = 2
EXIT_CONFIG = 3


def _client(config: RelayConfig) -> Optional[JenkinsClient]:
    if not config.section("jenkins").get("url"):
        return None
    return JenkinsClient.from_config(config)


def _project_from_file(path: str) -> Project:
    data = json.loads(Path(path).read_text())
    return parse_project(data)


def _resolve(config: RelayConfig, job: str, number: Optional[int], from_file: Optional[str]) -> Tuple[Project, Build, Optional[JenkinsClient]]:
    client = None if from_file else _client(config)
    project = _project_from_file(from_file) if from_file else None
    dispatcher = LifecycleDispatcher(config, client=client)
    project, build = dispatcher.resolve(job, number, project)
    return project, build, client


def cmd_notify(config: RelayConfig, phase: str, job: str, number: Optional[int], from_file: Optional[str]) -> int:
    client = None if from_file else _client(config)
    project = _project_from_file(from_file) if from_file else None
    dispatcher = LifecycleDispatcher(config, client=client)
    status = dispatcher.dispatch(phase, job, number, project)
    print(status)
    return EXIT_FAILED if status == "failed" else EXIT_OK


def cmd_send(
    config: RelayConfig,
    message: str,
    color: Optional[str],
    channel: Optional[str],
    endpoint: Optional[str],
    icon: Optional[str],
    fail_on_error: bool,
) -> int:
    step = MattermostSendStep(
        message=message,
        color=color,
        channel=channel,
        endpoint=endpoint,
        icon=icon,
        fail_on_error=fail_on_error,
    )
    try:
        sent = step.run(NotifierSettings.from_config(config))
    except AbortError as exc:
        print(f"Error: {exc}")
        return EXIT_FAILED
    return EXIT_OK if sent else EXIT_FAILED


def cmd_preview(config: RelayConfig, phase: str, job: str, number: Optional[int], from_file: Optional[str]) -> int:
    """Show what would be posted, without posting it."""
    from rich.console import Console
    from rich.table import Table

    project, build, client = _resolve(config, job, number, from_file)
    settings = NotifierSettings.from_config(config, job=project.name or job)
    notifier = ActiveNotifier(settings, upstream_resolver=client.resolve_upstream if client else None)

    if phase == STARTED:
        color = start_color(project, build)
        would_publish = settings.notify_start
        payload = notifier.start_payload(project, build)
    else:
        color = build_color(build.result)
        would_publish = should_publish(project, build, settings)
        payload = notifier.build_status_payload(project, build)

    console = Console()
    table = Table(title=f"{project.full_display_name} {build.display_name}", show_header=False)
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_row("Event", phase.lower())
    table.add_row("Result", build.result.value if build.result else "(running)")
    table.add_row("Status", status_message(project, build))
    table.add_row("Color", color)
    table.add_row("Would publish", "yes" if would_publish else "no")
    table.add_row("Targets", settings.room or "(default)")
    console.print(table)
    console.print_json(json.dumps(payload))
    return EXIT_OK


def cmd_serve(config: RelayConfig, host: Optional[str], port: Optional[int]) -> int:
    from jenkins_mattermost_web.app import DEFAULT_BIND_HOST, DEFAULT_BIND_PORT, create_app

    web = config.section("web")
    app = create_app(config)
    app.run(
        host=host or web.get("host", DEFAULT_BIND_HOST),
        port=int(port or web.get("port", DEFAULT_BIND_PORT)),
        debug=False,
        threaded=True,
    )
    return EXIT_OK


def cmd_test_connection(config: RelayConfig) -> int:
    settings = NotifierSettings.from_config(config)
    print("Notification settings:")
    print(f"  Webhook URL: {'configured' if settings.endpoint else 'not configured'}")
    print(f"  Targets: {settings.room or '(default channel)'}")
    print(f"  Proxy: {settings.proxy.host if settings.proxy else 'none'}")
    if not settings.endpoint:
        print("❌ Webhook URL is not configured")
        return EXIT_FAILED

    with MattermostService.from_settings(settings) as service:
        sent = service.publish(":test_tube: jenkins-mattermost connection test", "good")
    print("✅ Mattermost test message sent" if sent else "❌ Mattermost test message failed")
    return EXIT_OK if sent else EXIT_FAILED


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Jenkins to Mattermost relay CLI")
    parser.add_argument(
        "--config",
        help="Path to notify.yaml (default: JENKINS_MATTERMOST_CONFIG or the standard search path)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    def add_build_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--job", required=True, help="Full job name, e.g. folder/app")
        p.add_argument("--build", type=int, default=None, help="Build number (default: last build)")
        p.add_argument("--from-file", help="Read the job JSON from a file instead of Jenkins")

    p_notify = sub.add_parser("notify", help="React to a build lifecycle event")
    p_notify.add_argument("phase", choices=["started", "completed"], help="Lifecycle phase")
    add_build_args(p_notify)

    p_send = sub.add_parser("send", help="Send an explicit message (mattermostSend step)")
    p_send.add_argument("message", help="Message text")
    p_send.add_argument("--color", help="Attachment color (good, warning, danger or #hex)")
    p_send.add_argument("--channel", help="Channel(s), overrides mattermost.room")
    p_send.add_argument("--endpoint", help="Webhook URL, overrides mattermost.webhook_url")
    p_send.add_argument("--icon", help="Icon URL, overrides mattermost.icon")
    p_send.add_argument("--fail-on-error", action="store_true", help="Exit non-zero when sending fails")

    p_preview = sub.add_parser("preview", help="Print the decision and payload without sending")
    p_preview.add_argument("--phase", choices=["started", "completed"], default="completed")
    add_build_args(p_preview)

    p_serve = sub.add_parser("serve", help="Run the Jenkins notification listener")
    p_serve.add_argument("--host", default=None, help="Bind address (default: web.host or 0.0.0.0)")
    p_serve.add_argument("--port", type=int, default=None, help="Bind port (default: web.port or 8090)")

    sub.add_parser("test-connection", help="Post a test message to the configured webhook")

    args = parser.parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return EXIT_FAILED

    try:
        config = load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"Error: cannot load configuration: {exc}")
        return EXIT_CONFIG

    try:
        if args.command == "notify":
            phase = STARTED if args.phase == "started" else COMPLETED
            return cmd_notify(config, phase, args.job, args.build, args.from_file)
        if args.command == "send":
            return cmd_send(
                config,
                message=args.message,
                color=args.color,
                channel=args.channel,
                endpoint=args.endpoint,
                icon=args.icon,
                fail_on_error=args.fail_on_error,
            )
        if args.command == "preview":
            phase = STARTED if args.phase == "started" else COMPLETED
            return cmd_preview(config, phase, args.job, args.build, args.from_file)
        if args.command == "serve":
            return cmd_serve(config, args.host, args.port)
        if args.command == "test-connection":
            return cmd_test_connection(config)
    except (JenkinsError, LookupError) as exc:
        print(f"Error: {exc}")
        return EXIT_LOOKUP

    parser.error(f"Unknown command: {args.command}")
    return EXIT_FAILED
