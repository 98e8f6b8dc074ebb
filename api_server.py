"""Very small Flask API that runs an uptime check on demand."""

import logging
import os
from typing import Any

from dotenv import load_dotenv
from flask import Flask, request, jsonify

from uptimelib.config import ConfigError, Settings, load_endpoints, parse_endpoints
from uptimelib.notify import build_sink
from uptimelib.runner import run

app = Flask(__name__)
logger = logging.getLogger(__name__)


def configure(settings: Settings) -> None:
    """Store the settings and the sink built from them on the app."""
    app.config["MONITOR_SETTINGS"] = settings
    app.config["MONITOR_SINK"] = build_sink(settings)


@app.route("/health", methods=["GET"])
def health() -> Any:
    return jsonify({"status": "ok"})


@app.route("/check", methods=["POST"])
def check() -> Any:
    """Run one pass over the configured (or posted) endpoint list."""

    settings = app.config.get("MONITOR_SETTINGS")
    sink = app.config.get("MONITOR_SINK")
    if settings is None or sink is None:
        return jsonify({"error": "server is not configured"}), 500

    data = request.get_json(silent=True)
    if data is None:
        data = {}
    elif not isinstance(data, dict):
        return jsonify({"error": "request body must be a JSON object"}), 400

    try:
        endpoints = data.get("endpoints")
        if endpoints is None:
            endpoints = load_endpoints(settings.endpoints_file)
        elif not isinstance(endpoints, list) or not all(
            isinstance(e, str) for e in endpoints
        ):
            return jsonify({"error": "endpoints must be a list of URLs"}), 400
    except ConfigError as exc:
        logger.error("configuration error: %s", exc)
        return jsonify({"error": str(exc)}), 500

    summary = run(parse_endpoints(endpoints), settings, sink)
    return jsonify(summary.as_dict())


def main() -> None:
    """Entry point for running the API with ``python api_server.py``."""

    load_dotenv()
    logging.basicConfig(level=logging.INFO)
    try:
        settings = Settings.from_env()
    except ConfigError as exc:
        logger.error("configuration error: %s", exc)
        raise SystemExit(1)
    logging.getLogger().setLevel(settings.log_level)
    configure(settings)
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 8000)))


if __name__ == "__main__":
    main()
