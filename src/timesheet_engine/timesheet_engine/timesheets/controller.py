from __future__ import annotations

import logging
from datetime import date

from flask import Flask, jsonify, request, send_file

from ..common.datetime_utils import parse_iso_date
from ..core.exceptions import ApiError, BusyError, SessionNotFoundError, ValidationError
from ..container import Container
from .export import XLSX_MIMETYPE, pivot_to_xlsx

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    service = container.timesheet_service

    def _parse_date(v: str) -> date:
        try:
            return parse_iso_date(v)
        except ValueError:
            raise ValidationError(f"Invalid date: {v!r}") from None

    def _confirm() -> bool:
        data = request.get_json(silent=True) or {}
        if "confirm" in data:
            return bool(data["confirm"])
        return request.args.get("confirm", "").lower() in {"1", "true", "yes"}

    def _error(message: str, status: int):
        return jsonify({"success": False, "message": message}), status

    @app.errorhandler(ValidationError)
    def handle_validation(e: ValidationError):
        return _error(str(e), 400)

    @app.errorhandler(SessionNotFoundError)
    def handle_not_found(e: SessionNotFoundError):
        return _error(str(e), 404)

    @app.errorhandler(BusyError)
    def handle_busy(e: BusyError):
        return _error(str(e), 409)

    @app.errorhandler(ApiError)
    def handle_api(e: ApiError):
        logger.error("Backend call failed: %s", e)
        return _error(str(e), 502)

    @app.route("/api/timesheets/exists", methods=["GET"], endpoint="timesheet_exists")
    def timesheet_exists():
        employee_id = request.args.get("employee_id", "").strip()
        if not employee_id:
            raise ValidationError("Employee is required")
        day = _parse_date(request.args.get("date", ""))
        return jsonify({"success": True, **service.find_for_date(employee_id=employee_id, day=day)})

    @app.route("/api/timesheets/sessions", methods=["POST"], endpoint="open_timesheet_session")
    def open_session():
        data = request.get_json(silent=True) or {}
        raw_day = data.get("date")
        session_id = service.open_session(
            employee_id=str(data.get("employee_id") or "").strip(),
            timesheet_id=str(data.get("timesheet_id") or "").strip() or None,
            day=_parse_date(raw_day) if raw_day else None,
        )
        return jsonify({"success": True, "session_id": session_id, "header": service.header_ui(session_id)}), 201

    @app.route("/api/timesheets/sessions/<session_id>", methods=["GET"], endpoint="timesheet_session")
    def get_session(session_id: str):
        return jsonify({"success": True, "header": service.header_ui(session_id)})

    @app.route("/api/timesheets/sessions/<session_id>", methods=["DELETE"], endpoint="close_timesheet_session")
    def close_session(session_id: str):
        if not service.close_session(session_id, _confirm()):
            return jsonify({"success": False, "unsaved": True, "message": "Unsaved changes"}), 409
        return jsonify({"success": True})

    @app.route("/api/timesheets/sessions/<session_id>/dates", methods=["GET"], endpoint="timesheet_dates")
    def visible_dates(session_id: str):
        return jsonify({"success": True, "dates": service.visible_dates_ui(session_id), **service.leave_ui(session_id)})

    @app.route("/api/timesheets/sessions/<session_id>/days/<day>", methods=["GET"], endpoint="timesheet_day")
    def day_items(session_id: str, day: str):
        return jsonify({"success": True, **service.day_ui(session_id, _parse_date(day))})

    @app.route("/api/timesheets/sessions/<session_id>/aggregates", methods=["GET"], endpoint="timesheet_aggregates")
    def aggregates(session_id: str):
        return jsonify({"success": True, "totals": service.aggregates_ui(session_id)})

    @app.route("/api/timesheets/sessions/<session_id>/pivot", methods=["GET"], endpoint="timesheet_pivot")
    def pivot(session_id: str):
        return jsonify({"success": True, **service.pivot_ui(session_id)})

    @app.route("/api/timesheets/sessions/<session_id>/pivot.xlsx", methods=["GET"], endpoint="timesheet_pivot_xlsx")
    def pivot_xlsx(session_id: str):
        session = service.get_session(session_id)
        output = pivot_to_xlsx(session.get_pivot_table())
        name = f"timesheet_{session.navigator.start.isoformat()}_{session.navigator.end.isoformat()}.xlsx"
        return send_file(output, download_name=name, as_attachment=True, mimetype=XLSX_MIMETYPE)

    @app.route("/api/timesheets/sessions/<session_id>/items", methods=["POST"], endpoint="create_timesheet_item")
    def create_item(session_id: str):
        data = request.get_json(silent=True) or {}
        item = service.create_item(session_id, data)
        return jsonify({"success": True, "item": item}), 201

    @app.route("/api/timesheets/sessions/<session_id>/days/<day>/items/<path:key>", methods=["PUT"], endpoint="update_timesheet_item")
    def update_item(session_id: str, day: str, key: str):
        data = request.get_json(silent=True) or {}
        item = service.update_item(session_id, day=_parse_date(day), key=key, payload=data)
        return jsonify({"success": True, "item": item})

    @app.route("/api/timesheets/sessions/<session_id>/days/<day>/items/<path:key>", methods=["DELETE"], endpoint="delete_timesheet_item")
    def delete_item(session_id: str, day: str, key: str):
        deleted = service.delete_item(session_id, day=_parse_date(day), key=key)
        return jsonify({"success": True, "deleted": deleted})

    @app.route("/api/timesheets/sessions/<session_id>/remark", methods=["PUT"], endpoint="timesheet_remark")
    def remark(session_id: str):
        data = request.get_json(silent=True) or {}
        header = service.set_remark(session_id, data.get("text"), language=data.get("language"))
        return jsonify({"success": True, "header": header})

    @app.route("/api/timesheets/sessions/<session_id>/unsaved", methods=["GET"], endpoint="timesheet_unsaved")
    def unsaved(session_id: str):
        return jsonify({"success": True, "unsaved": service.has_unsaved_changes(session_id)})

    @app.route("/api/timesheets/sessions/<session_id>/save", methods=["POST"], endpoint="save_timesheet")
    def save(session_id: str):
        return jsonify({"success": True, "header": service.save(session_id)})

    @app.route("/api/timesheets/sessions/<session_id>/discard", methods=["POST"], endpoint="discard_timesheet")
    def discard(session_id: str):
        return jsonify({"success": True, "header": service.discard(session_id)})

    @app.route("/api/timesheets/sessions/<session_id>/reload", methods=["POST"], endpoint="reload_timesheet")
    def reload(session_id: str):
        done = service.reload(session_id, _confirm())
        return _navigation_response(session_id, done)

    @app.route("/api/timesheets/sessions/<session_id>/previous", methods=["POST"], endpoint="previous_timesheet_period")
    def previous_period(session_id: str):
        done = service.previous_period(session_id, _confirm())
        return _navigation_response(session_id, done)

    @app.route("/api/timesheets/sessions/<session_id>/next", methods=["POST"], endpoint="next_timesheet_period")
    def next_period(session_id: str):
        done = service.next_period(session_id, _confirm())
        return _navigation_response(session_id, done)

    def _navigation_response(session_id: str, done: bool):
        # 409 tells the client to ask the user before retrying with confirm=true.
        if not done:
            return jsonify({"success": False, "unsaved": True, "message": "Unsaved changes"}), 409
        return jsonify({"success": True, "header": service.header_ui(session_id)})
