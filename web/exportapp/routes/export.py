"""
Parquet export route.

GET /api/data/parameters/trace/parquet
    ?parameterIndices=1,2&startTime=2024-01-10T10:00:00&endTime=2024-01-10T11:00:00

  200  application/octet-stream attachment (one Parquet file)
  400  invalid parameters or startTime after endTime
  404  no trace rows matched
  500  the conversion failed
  504  the export exceeded EXPORT_TIMEOUT_SECONDS and was cancelled
"""

from __future__ import annotations

from flask import Blueprint, Response, current_app, jsonify, request
from pydantic import ValidationError

from trace_export import Err
from trace_export.errors import ExportErrorKind

from ..managers.export_manager import ExportManager
from ..schemas import DataExportRequest, describe_validation_error

bp = Blueprint("export", __name__, url_prefix="/api/data/parameters/trace")


@bp.route("/parquet", methods=["GET"])
def export_parquet():
    """Query the trace store and return the matching rows as a Parquet download."""
    try:
        req = DataExportRequest.from_query(request.args)
    except ValidationError as e:
        message = describe_validation_error(e)
        current_app.logger.warning("Validation failed for request: %s", message)
        return jsonify({"success": False, "error": message}), 400

    current_app.logger.info(
        "Received request to export data for parameter indices: %s from %s to %s",
        req.parameter_indices, req.start_time, req.end_time,
    )

    export_mgr: ExportManager = current_app.extensions["export_mgr"]
    result = export_mgr.export_parquet(req)

    if isinstance(result, Err):
        if result.error.kind is ExportErrorKind.CANCELLED:
            current_app.logger.error("Parquet export cancelled: %s", result.error.message)
            return jsonify({"success": False, "error": "Export timed out"}), 504
        current_app.logger.error("Parquet export failed: %r", result.error.unwrap_cause())
        return jsonify({"success": False, "error": "Failed to convert data to Parquet"}), 500

    data = result.value
    if not data:
        current_app.logger.warning("No data found for request: %s", req.parameter_indices)
        return jsonify({"success": False, "error": "No data found for the given criteria."}), 404

    filename = current_app.config.get("EXPORT_FILENAME", "parameter_data.parquet")
    current_app.logger.info("Successfully generated Parquet file of size: %d bytes", len(data))
    return Response(
        data,
        mimetype="application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
