from __future__ import annotations

import logging

from flask import Flask, jsonify

from gradeportal import config
from gradeportal.routes import auth_simple_bp, grading_bp, reports_bp, scores_bp

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = Flask(__name__)
app.secret_key = config.SECRET_KEY
app.config["SESSION_COOKIE_NAME"] = config.SESSION_COOKIE_NAME

# Reads are open to students; every change to a rubric or score record
# requires an admin session.
app.register_blueprint(auth_simple_bp)
app.register_blueprint(grading_bp)
app.register_blueprint(scores_bp)
app.register_blueprint(reports_bp)


@app.get("/api/health")
def health():
    return jsonify({"ok": True})


if __name__ == "__main__":
    app.run(debug=True)
