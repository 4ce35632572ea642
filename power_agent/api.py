"""
JSON API
- GET  /api/state
- POST /api/up    (acknowledges immediately, startup outcome goes to the log)
- POST /api/down
"""
import logging

from flask import Flask, jsonify

from power_agent.monitor import log_notifier
from power_agent.service import BackgroundLoop, PowerService, TriggerStatus

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30


def create_app(service: PowerService, loop: BackgroundLoop) -> Flask:
    app = Flask(__name__)
    notifier = log_notifier(logging.getLogger("power_agent.api.startup"))

    @app.route("/api/state", methods=["GET"])
    def state():
        snapshot = loop.run(service.state(), timeout=REQUEST_TIMEOUT)
        for signal, error in snapshot.errors:
            logger.error(f"Failed to retrieve {signal.upper()} state: {error}")
        status = 502 if snapshot.errors else 200
        return jsonify(snapshot.to_dict()), status

    @app.route("/api/up", methods=["POST"])
    def up():
        result = loop.run(service.power_on(notifier, name="API"), timeout=REQUEST_TIMEOUT)
        loop.keep(result.task)
        if result.status == TriggerStatus.ERROR:
            return jsonify({"status": "ko", "error": "a problem occurred during server startup"}), 500
        if result.status == TriggerStatus.ALREADY_ON:
            return jsonify({"status": "ok", "detail": "already on"}), 200
        return jsonify({"status": "in progress"}), 202

    @app.route("/api/down", methods=["POST"])
    def down():
        result = loop.run(service.power_off(), timeout=REQUEST_TIMEOUT)
        if result.status == TriggerStatus.ERROR:
            return jsonify({"status": "ko", "error": "a problem occurred during server shutdown"}), 500
        if result.status == TriggerStatus.ALREADY_OFF:
            return jsonify({"status": "ok", "detail": "already off"}), 200
        return jsonify({"status": "ok"}), 200

    return app
