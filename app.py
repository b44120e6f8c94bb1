"""
Pipe Cutting Optimizer - JSON API.
Lengths in inches. Requests are grouped by OD class and packed onto standard
stock pipes (1.9" 24 ft, 2.375" 25 ft, 3.5" 26/32 ft) with a 2 in cutoff per pipe.
Uses db.py for storage: SQLite locally, Turso when env vars are set.
"""

import logging
import os

import click
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

import db
import history
import optimizer
from errors import AppError, ValidationError
from models import CutRequest

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = Flask(__name__)

API_PREFIX = "/api/pipe-optimization"

init_db = db.init_db


@app.before_request
def ensure_db():
    init_db()  # no-op if tables exist


@app.errorhandler(AppError)
def handle_app_error(err):
    if err.status_code >= 500:
        logger.error("Error: %s", err.message)
    return jsonify(err.to_dict()), err.status_code


@app.errorhandler(Exception)
def handle_unexpected_error(err):
    if isinstance(err, HTTPException):
        return err
    logger.exception("Unhandled error")
    return jsonify({"status": "error", "message": "Something went wrong"}), 500


def _json_body():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _parse_pipes(raw_pipes):
    if not raw_pipes or not isinstance(raw_pipes, list):
        raise ValidationError("Pipes array is required and must not be empty")
    pipes = []
    for i, p in enumerate(raw_pipes):
        try:
            pipes.append(CutRequest.from_dict(p))
        except ValueError as e:
            raise ValidationError("Pipe {}: {}".format(i + 1, e))
    return pipes


def _parse_stock_length(raw):
    # absent, empty or 0 means "no override"
    if raw is None or raw == "" or (not isinstance(raw, bool) and raw == 0):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ValidationError("Stock length must be a positive number")
    if value <= 0:
        raise ValidationError("Stock length must be a positive number")
    return value


@app.route(API_PREFIX + "/optimize", methods=["POST"])
def optimize_pipes():
    body = _json_body()
    pipes = _parse_pipes(body.get("pipes"))
    job_id = body.get("jobId")
    if not job_id:
        raise ValidationError("Job ID is required")
    stock_length = _parse_stock_length(body.get("stockLength"))

    result = optimizer.optimize(pipes, job_id, stock_length)
    return jsonify({"success": True, "data": result.to_dict()})


@app.route(API_PREFIX + "/upload", methods=["POST"])
def upload_file():
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        raise ValidationError("No file uploaded")
    job_id = request.form.get("jobId")
    if not job_id:
        raise ValidationError("Job ID is required")
    if not upload.filename.lower().endswith(".csv"):
        raise AppError("Excel file processing not implemented yet", 501)

    raw_text = upload.read().decode("utf-8-sig")
    result = optimizer.optimize_csv(raw_text, job_id)
    return jsonify({"success": True, "data": result.to_dict()})


@app.route(API_PREFIX + "/history/<job_id>", methods=["GET"])
def optimization_history(job_id):
    rows = optimizer.get_history(job_id)
    return jsonify({"success": True, "count": len(rows), "data": rows})


@app.route(API_PREFIX + "/history/<job_id>/filter", methods=["POST"])
def filter_history(job_id):
    body = _json_body()
    start, end = body.get("startDate"), body.get("endDate")
    if not start or not end:
        raise ValidationError("Start date and end date are required")
    try:
        start, end = history.to_naive_utc(start), history.to_naive_utc(end)
    except (TypeError, ValueError):
        raise ValidationError("Start date and end date must be ISO 8601 dates")
    rows = optimizer.filter_by_date_range(job_id, start, end)
    return jsonify({"success": True, "count": len(rows), "data": rows})


@app.route(API_PREFIX + "/visualization/<job_id>", methods=["GET"])
def visualization(job_id):
    return jsonify({"success": True, "data": optimizer.visualize(job_id)})


@app.cli.command("create-job")
@click.option("--sales-order", default=None, help="Sales order number used in traceability codes.")
def create_job_command(sales_order):
    """Create a job record so pipes can be optimized against it."""
    init_db()
    details = {"salesOrderNumber": sales_order} if sales_order else {}
    job = db.create_job(details)
    click.echo(job["id"])


if __name__ == "__main__":
    init_db()
    app.run(host="127.0.0.1", port=int(os.environ.get("PORT", 5002)), debug=False)
