#!/usr/bin/env python3
"""
Jenkins notification listener - Flask application

Receives the per-phase POSTs of the Jenkins Notification plugin and relays
started/completed builds to Mattermost.
- POST /jenkins/notification : lifecycle event from Jenkins
- GET  /health               : liveness probe
"""

import logging
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request

from jenkins_mattermost.core.config import RelayConfig, load_config
from jenkins_mattermost.core.events import LifecycleDispatcher
from jenkins_mattermost.core.ingest.jenkins_api import JenkinsClient, JenkinsError, job_name_from_url
from jenkins_mattermost.core.notify.active import ServiceFactory

logger = logging.getLogger(__name__)

DEFAULT_BIND_HOST = "0.0.0.0"
DEFAULT_BIND_PORT = 8090


def _parse_notification(body: Any) -> Optional[Dict[str, Any]]:
    """Extract job, build number and phase from a Notification plugin document."""
    if not isinstance(body, dict):
        return None
    build = body.get("build")
    if not isinstance(build, dict) or not build.get("phase"):
        return None
    job = job_name_from_url(str(body.get("url") or "")) or str(body.get("name") or "")
    if not job:
        return None
    number = build.get("number")
    try:
        number = int(number) if number is not None else None
    except (TypeError, ValueError):
        return None
    return {"job": job, "number": number, "phase": str(build["phase"]).upper()}


def create_app(
    config: Optional[RelayConfig] = None,
    client: Optional[JenkinsClient] = None,
    service_factory: Optional[ServiceFactory] = None,
) -> Flask:
    config = config or load_config()
    if client is None and config.section("jenkins").get("url"):
        client = JenkinsClient.from_config(config)
    dispatcher = LifecycleDispatcher(config, client=client, service_factory=service_factory)
    token = config.section("web").get("token")

    app = Flask(__name__)
    app.config["DISPATCHER"] = dispatcher

    def verify_token() -> bool:
        """Token in header or query string; open access when none is configured."""
        if not token:
            return True
        req_token = request.headers.get("X-Auth-Token") or request.args.get("token")
        return req_token == token

    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    @app.route("/jenkins/notification", methods=["POST"])
    def jenkins_notification():
        if not verify_token():
            return jsonify({"error": "Unauthorized"}), 403

        event = _parse_notification(request.get_json(silent=True))
        if event is None:
            return jsonify({"error": "Malformed notification"}), 400

        try:
            status = dispatcher.dispatch(event["phase"], event["job"], event["number"])
        except JenkinsError as exc:
            logger.warning("Jenkins lookup failed for %s: %s", event["job"], exc)
            return jsonify({"error": str(exc)}), 502
        except LookupError as exc:
            return jsonify({"error": str(exc)}), 404
        return jsonify({"status": status, "job": event["job"], "number": event["number"]})

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found"}), 404

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    cfg = load_config()
    web = cfg.section("web")
    create_app(cfg).run(
        host=web.get("host", DEFAULT_BIND_HOST),
        port=int(web.get("port", DEFAULT_BIND_PORT)),
        debug=False,
        threaded=True,
    )
