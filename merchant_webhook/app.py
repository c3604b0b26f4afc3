# merchant_webhook/app.py
# Sample receiver for local runs: point webhook_url at http://<host>:9000/merchant-webhook
import json
import logging
import os
from typing import Optional

from flask import Flask, jsonify, request

from webhook_dispatcher import verify_signature

logger = logging.getLogger("merchant_webhook")


def create_app(secret: Optional[str] = None) -> Flask:
    app = Flask(__name__)
    app.config["WEBHOOK_SECRET"] = secret or os.getenv("MERCHANT_WEBHOOK_SECRET", "dev_secret")
    app.config["EVENTS"] = []

    @app.route("/merchant-webhook", methods=["POST"])
    def hook():
        body = request.get_data()
        sig = request.headers.get("X-Signature")
        if not verify_signature(app.config["WEBHOOK_SECRET"], body, sig):
            logger.warning(f"Rejected webhook with bad signature {sig!r}")
            return jsonify({"ok": False, "error": "invalid_signature"}), 401
        event = json.loads(body)
        app.config["EVENTS"].append(event)
        logger.info(f"Got {request.headers.get('X-Event')} for {event.get('id')}: {event.get('status')}")
        return jsonify({"ok": True})

    @app.get("/events")
    def events():
        return jsonify(app.config["EVENTS"])

    @app.get("/health")
    def health():
        return jsonify({"status": "ok"})

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    create_app().run(host="0.0.0.0", port=int(os.getenv("MERCHANT_WEBHOOK_PORT", "9000")))
